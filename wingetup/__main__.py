#!/usr/bin/env python3
"""
wingetup module entry point
Allows running: python -m wingetup
"""

from wingetup.cli import main

if __name__ == '__main__':
    main()
