"""
Run PyInstaller against this script file to build a standalone executable.
Make sure that hexcrc is installed into the Python environment before.
"""
from hexcrc.__main__ import main as _main

_main('__main__')
