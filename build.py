#!/usr/bin/env python3
from sitemanifest.cli import main

if __name__ == "__main__":
    main()
