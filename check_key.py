"""
Print the server public key the relay co-signs with.

Reads HASH_PRIVATE_KEY (JSON array of 64 bytes) from env/.env, or a
solana-keygen keypair file given as the first argument. Fund this address and
share it with clients; their transactions must carry its signature.

Run: python check_key.py [path/to/id.json]
"""

from __future__ import annotations

import sys
from pathlib import Path

from presale_relay.config import get_settings
from presale_relay.config.settings import parse_server_keypair
from presale_relay.core.exceptions import ConfigurationError


def main(argv: list[str]) -> int:
    if len(argv) > 1:
        path = Path(argv[1])
        print("Path:", path)
        raw = path.read_text(encoding="utf-8")
    else:
        raw = get_settings().hash_private_key
        if not raw:
            print("HASH_PRIVATE_KEY is not set", file=sys.stderr)
            return 1
    try:
        kp = parse_server_keypair(raw)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return 1
    print("Server pubkey:", kp.pubkey())
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
