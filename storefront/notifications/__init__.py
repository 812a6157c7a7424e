"""
Module 'notifications': capacité générique « envoyer une notification ».
"""

from .service import send_notification

__all__ = ["send_notification"]
