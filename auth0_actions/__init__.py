"""Auth0 Actions Manager - deploy and bind Auth0 post-login actions."""

__version__ = "0.1.0"
