# UserDesk - User Administration API
"""
UserDesk - User authentication and administration service.

Registration, cookie sessions, password reset with one-time codes, profile
editing with image upload, admin user management and an activity audit trail.
"""

__version__ = "0.1.0"
__author__ = "UserDesk"
__description__ = "User authentication and administration API"
