from .message import MarkFlags, MessageRow, SearchCriteria

__all__ = ['MarkFlags', 'MessageRow', 'SearchCriteria']
