"""
hcert_decoder — EU Digital COVID Certificate (HC1) token decoder.

Turns an `HC1:` QR-code string into typed vaccination, recovery and test
records: base45 → deflate → CBOR → COSE_Sign1 envelope → HCERT claims.
The embedded signature is NOT verified.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
