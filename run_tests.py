#!/usr/bin/env python3
"""
Run the BaseCamp test modules one by one.

Each module runs in its own interpreter so a crash or a stuck clone in one
module cannot take the rest of the suite with it. Pass module names to run
a subset: ``python run_tests.py test_removal_safety.py``.
"""

import sys
import subprocess
import time
from pathlib import Path


ROOT = Path(__file__).parent

TEST_MODULES = [
    ("test_runtime_config.py", "runtime settings, logging, store lock, error responses"),
    ("test_remote_locator.py", "clone addresses and name validation"),
    ("test_configuration_store.py", "configuration store"),
    ("test_repository_cloning.py", "cloning, failure classification, inspection"),
    ("test_install_orchestrator.py", "parallel install"),
    ("test_removal_safety.py", "safety-checked removal"),
    ("test_end_to_end_integration.py", "configure, install, remove"),
]


def run_module(test_file: str, description: str) -> bool:
    path = ROOT / test_file
    print(f"\n--- {test_file}: {description}")

    if not path.exists():
        print(f"missing: {path}")
        return False

    started = time.monotonic()
    result = subprocess.run([sys.executable, str(path)], cwd=ROOT)
    elapsed = time.monotonic() - started

    print(f"--- {test_file}: {'ok' if result.returncode == 0 else 'FAILED'} ({elapsed:.1f}s)")
    return result.returncode == 0


def main(argv) -> int:
    selected = [(name, desc) for name, desc in TEST_MODULES if not argv or name in argv]
    unknown = set(argv) - {name for name, _ in TEST_MODULES}
    if unknown:
        print(f"Unknown test modules: {', '.join(sorted(unknown))}")
        return 2

    failed = [name for name, desc in selected if not run_module(name, desc)]

    print(f"\n{len(selected) - len(failed)}/{len(selected)} test modules passed")
    for name in failed:
        print(f"  FAILED {name}")
    return 1 if failed else 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nTest run interrupted")
        sys.exit(1)
