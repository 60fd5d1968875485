"""
Allow running with 'python -m yalv'
"""
import sys

from .yalv import main

sys.exit(main())
