"""
gcp-log-tail entry point.

Usage:
    cat config.yaml | python main.py -p my-project --format jsonl
"""

from gcp_log_tail.cli import main

if __name__ == "__main__":
    main()
