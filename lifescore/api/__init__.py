"""REST API for the LifeScore engine"""
from lifescore.api.server import create_api_application

__all__ = ["create_api_application"]
