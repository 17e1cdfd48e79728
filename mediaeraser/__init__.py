"""
mediaeraser - Media Duplicate Eraser

Finds exact and perceptually similar duplicate media files and erases
the redundant copies inside an all-or-nothing transaction.
"""

from .common.utils import VERSION

__version__ = VERSION
