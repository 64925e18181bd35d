"""darcyflow: mixed finite elements for steady Darcy flow."""

__version__ = "0.1.0"
