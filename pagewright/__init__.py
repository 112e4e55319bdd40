"""Pagewright - A rich-text pagination and formatting engine."""

from .commands import Command, CommandKind, CommandResult
from .editor import Editor
from .model import ContentModel
from .paginator import Page, Paginator
from .surface import DocumentSurface, EditingSurface

__all__ = [
    'Command',
    'CommandKind',
    'CommandResult',
    'ContentModel',
    'DocumentSurface',
    'EditingSurface',
    'Editor',
    'Page',
    'Paginator',
]
