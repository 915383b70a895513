#!/usr/bin/env python3
"""
Create a new fee payer keypair for the sponsored swap service.
⚠️ IMPORTANT: Save the private key securely!
"""

import base58
from solders.keypair import Keypair

keypair = Keypair()

# Private key in base58 format (needed for .env)
private_key_base58 = base58.b58encode(bytes(keypair)).decode('utf-8')

public_key = str(keypair.pubkey())

print("=" * 60)
print("NEW FEE PAYER CREATED")
print("=" * 60)
print(f"\nFee payer address:")
print(public_key)
print(f"\nPrivate Key (base58):")
print(private_key_base58)
print("\n" + "=" * 60)
print("⚠️  IMPORTANT:")
print("1. Save the private key in a secure place!")
print("2. Add it to .env as FEE_PAYER_PRIVATE_KEY")
print("3. Fund the fee payer with SOL: it fronts rent and network fees")
print("4. NEVER publish the private key!")
print("=" * 60)
