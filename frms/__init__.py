"""
FRMS Compliance Engine
======================

Flight and duty time compliance for aircrew operating under a Fatigue Risk
Management System.
"""

__version__ = '1.0.0'
