from .connection import FetchRecord, IMAPSession, connect
from .protocol import IMAPProtocol

__all__ = ['FetchRecord', 'IMAPSession', 'connect', 'IMAPProtocol']
