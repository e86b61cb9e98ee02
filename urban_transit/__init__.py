"""Urban transit ticketing and route management backend."""

__version__ = "1.0.0"
