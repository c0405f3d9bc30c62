# Configuration file for the Sphinx documentation builder.
project = 'schoolcert'
copyright = '2025, schoolcert'
author = 'schoolcert'
release = '1.0.0'

extensions = ['sphinx.ext.autodoc', 'sphinx.ext.napoleon']

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

napoleon_numpy_docstring = True

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
