"""Document keys used in the record store."""

PENDING_SORT_KEY = "oauth#x#pending"
PROFILE_SORT_KEY = "profile"
ITEM_SORT_KEY_PREFIX = "item#"
LINKED_ACCOUNT_FIELD = "linked_account"


def user_partition_key(user_id: str) -> str:
    return f"user#{user_id}"


def item_sort_key(remote_item_id: str) -> str:
    return f"{ITEM_SORT_KEY_PREFIX}{remote_item_id}"
