"""Helpers shared by the library CLI: input validation, output rendering, logging setup."""
