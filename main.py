#!/usr/bin/env python3
"""
Main entry point for the web crawler.
"""

import sys

from webcrawler.cli import main


if __name__ == '__main__':
    sys.exit(main())
