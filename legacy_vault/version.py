"""Legacy Vault Meta information.
   Legacy Vault keeps a short list of asset records encrypted on-device
   behind a platform-signed mini-app session.
"""
__title__ = 'legacy_vault'
__description__ = (
   'Device-bound encrypted asset vault for chat-platform mini-apps, '
   'with server-side session validation.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 Legacy Vault Authors'
__author__ = 'Legacy Vault Authors'
__author_email__ = 'maintainers@legacy-vault.dev'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/legacy-vault/legacy-vault'
