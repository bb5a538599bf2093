"""Command-line front end for keypack."""
