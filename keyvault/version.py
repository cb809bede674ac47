"""KeyVault Meta information.
   KeyVault keeps symmetric keys on disk wrapped under an operator password.
"""
__title__ = 'keyvault'
__description__ = (
   'Password-protected key vault with a line-based '
   'text file format.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/keyvault'
