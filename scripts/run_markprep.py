#!/usr/bin/env python3
"""markprep runner.

Usage:
    python scripts/run_markprep.py scripts/user_config.py
    python scripts/run_markprep.py scripts/user_config.py --model CJS
    python scripts/run_markprep.py scripts/user_config.py --base-dir /tmp/out --rerun

Note: User config in scripts/user_config.py, expert defaults in markprep.schemas.param
"""

import sys

from markprep.cli.run_pipeline import main


if __name__ == "__main__":
    sys.exit(main())
