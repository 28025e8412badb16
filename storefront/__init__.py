"""Biosell storefront: cart store and checkout coordinator"""

__version__ = "1.0.0"
