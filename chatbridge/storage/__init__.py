"""Template persistence."""

from chatbridge.storage.service import TemplateStore

__all__ = ['TemplateStore']
