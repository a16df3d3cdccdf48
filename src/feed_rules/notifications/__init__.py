"""
Notification package for the Feed Rules Engine
"""
from .service import NotificationService, render_template

__all__ = ['NotificationService', 'render_template']
