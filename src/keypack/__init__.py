"""keypack: RSA key, CSR, PKCS#8 and PKCS#12 material builder."""

__version__ = "1.0.0"
