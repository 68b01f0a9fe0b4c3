"""Command line interface for cpan-audit."""
