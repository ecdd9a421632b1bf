"""Allow running the package as a module: python -m ewx_rewards"""

import sys

from ewx_rewards.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
