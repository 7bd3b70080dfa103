"""
Entry point for running hookgate as a module.

Allows running the hooks via:
    python -m hookgate commit-msg .git/COMMIT_EDITMSG
"""

from hookgate.cli import run

if __name__ == "__main__":
    run()
