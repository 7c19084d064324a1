#!/usr/bin/env python3
"""
Wrapper script to start the query router service.
Reads the port from the PORT environment variable set by the hosting platform.
"""
import os
import sys
import subprocess

def main():
    # Run from the repository root so the opsrouter package is importable
    root_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(root_dir)

    # Get the port from environment variable
    port = os.environ.get('PORT', '8000')

    cmd = [
        sys.executable, '-m', 'uvicorn',
        'opsrouter.main:app',
        '--host', '0.0.0.0',
        '--port', port
    ]

    print(f"Starting opsrouter from {root_dir}")
    print(f"Command: {' '.join(cmd)}")

    subprocess.run(cmd)

if __name__ == "__main__":
    main()
