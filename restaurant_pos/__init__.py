"""
                Restaurant POS

Business tier of a restaurant point-of-sale application: table occupancy,
open and paid bills, the food catalogue, and staff login against legacy
password hashes.
"""

__version__ = "1.0.0"
