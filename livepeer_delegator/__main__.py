"""Allow running the package as a module: python -m livepeer_delegator"""

import sys

from livepeer_delegator.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
