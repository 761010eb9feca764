def is_store_owner(user, store):
    """Only the owner of a store may change it or anything inside it"""
    if not user or not user.is_authenticated:
        return False
    return store.owner_id == user.pk
