#!/usr/bin/env python3
"""
s3lite command-line client

Run this script to work with one bucket of an S3-compatible service.

Usage:
    python run.py list                        # List the bucket
    python run.py list --prefix logs/ --json  # Filtered listing as JSON
    python run.py put notes.md ./notes.md     # Upload a file
    python run.py get notes.md out.md         # Download to a file
    python run.py delete notes.md             # Delete an object
    python run.py presign notes.md --ttl 600  # Print a presigned URL
    python run.py -c custom.json list         # Use custom config
"""

import sys
from s3lite.cli import main

if __name__ == "__main__":
    sys.exit(main())
