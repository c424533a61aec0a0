"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .media import MediaUploader, S3MediaUploader, get_media_uploader

__all__ = ['MediaUploader', 'S3MediaUploader', 'get_media_uploader']
