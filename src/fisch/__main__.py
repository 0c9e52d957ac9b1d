from pathlib import Path
import sys

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from fisch.presentation.cli import main


if __name__ == "__main__":
    main()
