"""
Joiner entrypoint (bot + OAuth2 callback server).

Operator notes:
- This file should remain extremely small and boring.
- All configuration validation happens inside joiner.main.run().
- If this file crashes, the error should be immediately obvious to the operator.
"""

import logging
import sys

from joiner.main import run


def main() -> None:
    try:
        run()
    except KeyboardInterrupt:
        pass
    except Exception:
        logging.basicConfig(level=logging.ERROR)
        logging.exception("OAuth2 joiner failed to start.")
        print("\n❌ OAuth2 joiner failed to start.")
        print("   See error above. Most common causes:")
        print("   - BOT_TOKEN / CLIENT_ID / CLIENT_SECRET missing or not loaded into the environment")
        print("   - REDIRECT_URI not a full http(s) URL")
        print("   - bound-users.json corrupt (fix or move it aside; it is never discarded automatically)")
        print("   - Port already in use (PORT)\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
