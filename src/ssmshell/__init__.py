"""Interactive AWS SSM Parameter Store shell with tab completion."""

__version__ = "0.1.0"
