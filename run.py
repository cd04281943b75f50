"""App runner: import and run TouchCalibrator.core.app.main()."""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from TouchCalibrator.core.app import main

if __name__ == "__main__":
    raise SystemExit(main())
