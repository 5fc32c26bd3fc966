#!/usr/bin/env python3
"""
Main entry point for the keyword crawler service.
"""

import sys

from keyword_crawler.cli import main

if __name__ == '__main__':
    sys.exit(main())
