# Configuration file for the Sphinx documentation builder.
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'src'))

from keypack import __version__  # noqa: E402

project = 'keypack'
copyright = '2025, keypack'
author = 'keypack'
version = '.'.join(__version__.split('.')[:2])
release = __version__

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.intersphinx',
]

# Docstrings are numpy style throughout.
napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_use_rtype = False

autodoc_default_options = {
    'members': True,
    'undoc-members': False,
    'member-order': 'bysource',
}
autodoc_typehints = 'description'

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'cryptography': ('https://cryptography.io/en/latest/', None),
    'pyasn1': ('https://pyasn1.readthedocs.io/en/latest/', None),
}

exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_title = f'keypack {release}'
