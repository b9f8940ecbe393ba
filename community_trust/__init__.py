"""Community Trust: authorization and community-trust policy core."""

__version__ = "1.0.0"
