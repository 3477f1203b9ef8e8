"""Binding and resolution domain."""
