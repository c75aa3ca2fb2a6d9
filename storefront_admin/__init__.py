"""Storefront admin backend: users, products and orders with transactional stock control."""

__version__ = "1.0.0"
