#!/usr/bin/env python3
"""Generate an admin or viewer key for the Midnight admin API."""

import sys

from midnight_admin.common.crypto import generate_admin_key


def main() -> None:
    role = sys.argv[1] if len(sys.argv) > 1 else "admin"
    if role not in ("admin", "viewer"):
        sys.exit("usage: generate-key.py [admin|viewer]")

    raw_key, key_hash, key_prefix = generate_admin_key()
    setting = "admin_key_hashes" if role == "admin" else "viewer_key_hashes"

    print("\n" + "=" * 60)
    print(f"  MIDNIGHT: {role.capitalize()} API Key Generator")
    print("=" * 60)
    print()
    print(f"  API Key:    {raw_key}")
    print(f"  Prefix:     {key_prefix}")
    print(f"  SHA-256:    {key_hash}")
    print()
    print("  Save this key now. Only its hash is kept in config.")
    print()
    print("  Add the hash to midnight.yaml:")
    print("    auth:")
    print(f"      {setting}:")
    print(f'        - "{key_hash}"')
    print()
    print("  Or set it in your environment:")
    print(f"    export MIDNIGHT_AUTH__{setting.upper()}='[\"{key_hash}\"]'")
    print()
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
