from blogsite.app import create_app

__all__ = ['create_app']
