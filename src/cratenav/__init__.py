"""CrateNav - browse, link and search RO-Crate metadata packages."""

__version__ = "0.1.0"
