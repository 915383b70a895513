#!/usr/bin/env python3
"""
Simple launcher: build one sponsored Jupiter swap-to-SOL transaction.
"""
import argparse
import asyncio
import sys

from sponsored_swap.main import main, setup_logging

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Sponsored Jupiter swap-to-SOL transaction builder')
    parser.add_argument('user', help='Token holder public key (base58)')
    parser.add_argument('source_mint', help='Mint of the token to swap (base58)')
    parser.add_argument('amount', help='Amount in the token\'s smallest unit')

    args = parser.parse_args()
    setup_logging()

    try:
        payload = asyncio.run(main(args.user, args.source_mint, args.amount))
    except KeyboardInterrupt:
        print("\nStopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
    sys.exit(0 if payload.get("status") == "ok" else 1)
