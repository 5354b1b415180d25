"""This module contains `StorageHub`, the storage centre of VoidMail.
"""
from .mailstore import EmailStore
from .usrsys.storage import UserStore
from .utils.storage import CommonStorage, MemoryStorage


class StorageHub(object):
    """The storage centre for VoidMail. This class owns the tables of one instance.

    Tables belong to the hub, not to the module: two hubs never share data.

    ..note:: Typically you use the one from `voidmail.VoidMail`.

    Related:

    - `voidmail.utils.storage` The abstract storage layer of VoidMail.
    """

    def __init__(self) -> None:
        self.user_store = UserStore(self.new_common_storage("email"))
        """`voidmail.usrsys.storage.UserStore`. Users keyed by email address."""
        self.email_store = EmailStore(self.new_common_storage("id"), self.user_store)
        """`voidmail.mailstore.EmailStore`. Emails keyed by id."""
        super().__init__()

    def new_common_storage(self, key_field: str) -> CommonStorage:
        """Create a common storage with `key_field` as primary key."""
        return MemoryStorage(key_field)
