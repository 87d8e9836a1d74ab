class Repository:
    """Shares the store's single connection with one table's operations."""

    def __init__(self, store):
        self.store = store

    def _connect(self):
        return self.store.initialize()
