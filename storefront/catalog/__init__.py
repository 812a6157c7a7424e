"""
Module 'catalog': produits actifs du tenant, instantanés pour le panier.
"""

from .models import Product
from .repository import list_active_products, get_products_map

__all__ = ["Product", "list_active_products", "get_products_map"]
