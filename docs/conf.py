import os
import sys
from datetime import datetime

# Keep Sphinx autodoc imports stable by making project `src/` importable.
PROJECT_ROOT = os.path.abspath('..')
SRC_ROOT = os.path.join(PROJECT_ROOT, 'src')
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

project = 'Bulletin Board'
author = 'Bulletin Board contributors'
copyright = f"{datetime.now().year}, {author}"
release = '0.1.0'

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.autosummary',
]

autosummary_generate = True
autodoc_member_order = 'bysource'
autodoc_typehints = 'description'
# Mock runtime-only deps so docs can build without the full app environment.
autodoc_mock_imports = [
    "bleach",
]
autodoc_default_options = {
    "members": True,
    "undoc-members": True,
    "show-inheritance": True,
}

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'alabaster'
