#!/usr/bin/env python
"""
Run script for the Jito token distributor.

This script sets up the logging directory and runs the distribution.
"""

import os
import sys
import asyncio
from pathlib import Path

# Ensure the 'distributor' package is in the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

# Create logs directory if it doesn't exist
logs_dir = Path("logs")
logs_dir.mkdir(exist_ok=True)

# Import the distributor's main function after setting up paths
from distributor.main import main

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
