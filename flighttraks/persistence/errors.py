"""Persistence exceptions."""


class PersistenceError(Exception):
    """Base exception for all persistence errors."""


class DocumentNotFoundError(PersistenceError):
    """A document is missing, or belongs to another user.

    Both cases look the same to the caller.
    """

    code = "not_found"

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")
