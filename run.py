#!/usr/bin/env python3
"""Convenience runner for the SafeSteps walk tracking tools.

Usage:
    python run.py replay track.json
    python run.py progress route.json --lat 42.2808 --lon -83.7430
"""
import logging
from safesteps.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    main()
