"""Message search engine.

Public API:
    build_query(criteria) -> IMAP SEARCH key list
    build_uid_set(uids) -> UID set chunks for batched commands
    SearchExecutor -> Single-folder search with SORT/SEARCH fallback
    search(session, criteria) -> Single or cross-folder search
"""
