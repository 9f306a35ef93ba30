"""
apisix_certbind — certificate binding plugin for the APISIX admin API.

Fingerprints a PEM certificate, compares it with the certificate objects
already stored on the gateway (`/ssls`), and uploads, reuses or cleans up
objects so exactly one current object serves the requested domains.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
