from midnight_admin.client.admin import AdminAPIClient
from midnight_admin.client.cache import TaggedCache

__all__ = ["AdminAPIClient", "TaggedCache"]
