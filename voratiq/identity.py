"""Voratiq identity strings shared by the CLI and rendering."""

__version__ = "0.3.0"
__codename__ = "VORATIQ"
__tagline__ = "Many agents. One spec. Every run on the record."

BANNER = r"""
 __   _____  ___    _ _____ ___ ___
 \ \ / / _ \| _ \  /_\_   _|_ _/ _ \
  \ V / (_) |   / / _ \| |  | | (_) |
   \_/ \___/|_|_\/_/ \_\_| |___\__\_\
"""
