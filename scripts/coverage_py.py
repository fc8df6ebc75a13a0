#!/usr/bin/env python3
"""Run the find & replace unit tests and parity harness with coverage.

Test modules are left out of the measurement, so the totals reflect the
engine and the comparison harness only. Produces a terminal summary that
lists uncovered lines and an HTML report.

Usage:
    python scripts/coverage_py.py                     # terminal + HTML report
    python scripts/coverage_py.py --html              # also open HTML report in browser
    python scripts/coverage_py.py --fail-under 90     # non-zero exit below 90%
    python scripts/coverage_py.py -k adjustment       # only tests matching a keyword
"""

import argparse
import subprocess
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
ROOT_DIR = SCRIPT_DIR.parent
COV_DIR = ROOT_DIR / "coverage_py"

SOURCES = "findreplace,findreplace_cmp"
OMIT = "*_test.py"


def find_venv_python() -> Path:
    """Return the venv Python interpreter path, falling back to this one."""
    candidates = [
        ROOT_DIR / ".env" / "bin" / "python",
        ROOT_DIR / ".env" / "Scripts" / "python.exe",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return Path(sys.executable)


def run(python: Path, *args: str) -> None:
    """Run a command via the given Python, exiting on failure."""
    result = subprocess.run([str(python), *args], cwd=str(ROOT_DIR))
    if result.returncode != 0:
        sys.exit(result.returncode)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the find & replace tests under coverage"
    )
    parser.add_argument(
        "--html", action="store_true", help="Open the HTML report when done"
    )
    parser.add_argument(
        "--fail-under",
        type=float,
        metavar="PCT",
        help="Exit non-zero if total coverage is below PCT",
    )
    parser.add_argument(
        "-k", dest="keyword", help="Only run tests matching this expression"
    )
    args = parser.parse_args()

    python = find_venv_python()
    data_file = str(COV_DIR / ".coverage")

    pytest_args = ["findreplace/", "findreplace_cmp/"]
    if args.keyword:
        pytest_args += ["-k", args.keyword]

    print("Running find & replace tests with coverage...")
    run(
        python,
        "-m",
        "coverage",
        "run",
        f"--data-file={data_file}",
        f"--source={SOURCES}",
        f"--omit={OMIT}",
        "-m",
        "pytest",
        *pytest_args,
    )

    html_dir = str(COV_DIR / "html")
    print("\nGenerating HTML report...")
    run(
        python,
        "-m",
        "coverage",
        "html",
        f"--data-file={data_file}",
        f"--directory={html_dir}",
        f"--omit={OMIT}",
    )
    index = COV_DIR / "html" / "index.html"
    print(f"HTML report: {index}")

    if args.html:
        import webbrowser

        webbrowser.open(index.as_uri())

    # Report last; a --fail-under miss exits here.
    print("\n=== Coverage Report ===")
    report = [
        "-m",
        "coverage",
        "report",
        f"--data-file={data_file}",
        f"--omit={OMIT}",
        "--show-missing",
        "--skip-covered",
    ]
    if args.fail_under is not None:
        report.append(f"--fail-under={args.fail_under}")
    run(python, *report)


if __name__ == "__main__":
    main()
