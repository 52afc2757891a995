"""macdots - Tooling for a macOS development-environment bundle.

Reads the Brewfile, zsh startup file and alias file of a dotfiles bundle
and provides the interactive path-selector shell helper.
"""

__version__ = "0.1.0"
