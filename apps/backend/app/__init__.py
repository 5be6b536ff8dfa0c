"""HTTP application package for docforge."""
