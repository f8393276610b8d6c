"""Lumen Clew - plain-language static analysis for public GitHub repositories."""
