"""hyprstack - Hyprland desktop stack installer."""

__version__ = "0.1.0"
