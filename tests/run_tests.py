#!/usr/bin/env python3
"""
Test runner for metaprep

Discovers every test module, prints a coloured pass/fail line per test and a
summary, and checks that the engines, codecs and external tools are usable.
"""

import sys
import time
import argparse
import unittest
from pathlib import Path

import colorama
from colorama import Fore, Style

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

TEST_PATTERN = "test_*.py"

REQUIRED_MODULES = [
    "metaprep.core.models",
    "metaprep.core.utils",
    "metaprep.core.processor",
    "metaprep.engines",
    "metaprep.codecs.image",
    "metaprep.codecs.video",
    "metaprep.operations",
    "metaprep.reporters",
]


class ColoredTextTestResult(unittest.TextTestResult):
    """Per-test result lines with a coloured status marker."""

    def _mark(self, test, marker, color, suffix=""):
        if self.showAll:
            self.stream.write(f"{color}{marker}{Style.RESET_ALL} {test._testMethodName}{suffix}\n")

    def addSuccess(self, test):
        super().addSuccess(test)
        self._mark(test, "✓", Fore.GREEN)

    def addError(self, test, err):
        super().addError(test, err)
        self._mark(test, "✗ ERROR", Fore.RED)

    def addFailure(self, test, err):
        super().addFailure(test, err)
        self._mark(test, "✗ FAIL", Fore.RED)

    def addSkip(self, test, reason):
        super().addSkip(test, reason)
        self._mark(test, "⚠ SKIP", Fore.YELLOW, f": {reason}")


def discover_tests(pattern=TEST_PATTERN):
    loader = unittest.TestLoader()
    return loader.discover(start_dir=str(Path(__file__).parent), pattern=pattern,
                           top_level_dir=str(project_root))


def _print_problems(title, problems):
    if not problems:
        return
    print("\n" + "-" * 50)
    print(f"{title}:")
    print("-" * 50)
    for test, traceback in problems:
        print(f"\n{test}:")
        print(traceback)


def run_tests(verbosity=1, pattern=TEST_PATTERN) -> bool:
    """Run the discovered suite and print a summary; True when nothing failed."""
    suite = discover_tests(pattern)
    runner = unittest.TextTestRunner(stream=sys.stdout, verbosity=verbosity,
                                     resultclass=ColoredTextTestResult)

    print("=" * 70)
    print("metaprep Test Suite")
    print("=" * 70)

    start_time = time.time()
    result = runner.run(suite)
    duration = time.time() - start_time

    total = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total - failures - errors - skipped

    print("\n" + "=" * 70)
    print("Test Summary")
    print("=" * 70)
    print(f"Total Tests:     {total}")
    print(f"Successful:      {passed}")
    print(f"Failures:        {failures}")
    print(f"Errors:          {errors}")
    print(f"Skipped:         {skipped}")
    print(f"Duration:        {duration:.2f} seconds")
    if total:
        print(f"Success Rate:    {passed / total * 100:.1f}%")

    _print_problems("FAILURES", result.failures)
    _print_problems("ERRORS", result.errors)

    return failures == 0 and errors == 0


def check_dependencies() -> bool:
    """Import every package module and report optional external tools."""
    print("Checking dependencies...")
    missing = []
    for module in REQUIRED_MODULES:
        try:
            __import__(module)
            print(f"{Fore.GREEN}✓{Style.RESET_ALL} {module}")
        except ImportError as e:
            print(f"{Fore.RED}✗{Style.RESET_ALL} {module}: {e}")
            missing.append(module)

    from metaprep.codecs.video import is_ffmpeg_available
    if is_ffmpeg_available():
        print(f"{Fore.GREEN}✓{Style.RESET_ALL} ffmpeg")
    else:
        print(f"{Fore.YELLOW}⚠{Style.RESET_ALL} ffmpeg not found (video tests use a mocked ffmpeg)")

    if missing:
        print(f"\nMissing modules: {missing}")
        print("Install the package with: pip install -e .[test]")
        return False

    print("All required modules available.\n")
    return True


def main():
    parser = argparse.ArgumentParser(description="metaprep Test Runner")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet output")
    parser.add_argument("--pattern", "-k", default=TEST_PATTERN, help="Test module pattern (default: test_*.py)")
    parser.add_argument("--check-deps", action="store_true", help="Check dependencies and exit")
    args = parser.parse_args()

    colorama.init()

    if args.quiet:
        verbosity = 0
    elif args.verbose:
        verbosity = 2
    else:
        verbosity = 1

    if not check_dependencies():
        print("Cannot run tests due to missing dependencies.")
        sys.exit(1)
    if args.check_deps:
        sys.exit(0)

    sys.exit(0 if run_tests(verbosity, args.pattern) else 1)


if __name__ == "__main__":
    main()
