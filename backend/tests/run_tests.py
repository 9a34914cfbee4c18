#!/usr/bin/env python3
"""
Runs the image relay test suite with pytest.

Examples:
    python tests/run_tests.py                # whole suite, verbose
    python tests/run_tests.py -k sweep       # sweeper tests only
    python tests/run_tests.py --report       # also write tests/report.html

Setup:
    pip install -e ".[test]"
"""

import os
import subprocess
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent


def build_command(args):
    """Translate runner arguments into a pytest command line."""
    args = list(args)
    cmd = [sys.executable, "-m", "pytest", "tests/"]

    if "--report" in args:
        args.remove("--report")
        cmd += ["--html=tests/report.html", "--self-contained-html"]

    if not any(arg.startswith("-v") or arg == "-q" for arg in args):
        cmd.append("-v")

    return cmd + args


def main():
    cmd = build_command(sys.argv[1:])
    print(f"[tests] {' '.join(cmd)}  (cwd: {BACKEND_DIR})")
    # pytest paths in the command are relative to backend/
    os.chdir(BACKEND_DIR)
    sys.exit(subprocess.run(cmd).returncode)


if __name__ == "__main__":
    main()
