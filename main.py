#!/usr/bin/env python
"""Run the SiteProof CLI from a checkout or a PyInstaller bundle."""
import os
import sys

if getattr(sys, 'frozen', False):
    # bundled: modules are unpacked under _MEIPASS
    package_root = sys._MEIPASS
else:
    package_root = os.path.dirname(os.path.abspath(__file__))

sys.path.insert(0, package_root)

from siteproof.cli import main

if __name__ == '__main__':
    main(prog_name="siteproof")
