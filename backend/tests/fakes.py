import uuid


class FakeResult:
    def __init__(self, rows):
        self._rows = list(rows)

    def scalars(self):
        return self

    def all(self):
        return list(self._rows)

    def first(self):
        return self._rows[0] if self._rows else None

    def scalar_one_or_none(self):
        return self._rows[0] if self._rows else None

    def scalar_one(self):
        return self._rows[0]


class FakeSession:
    """Minimal AsyncSession double: canned query rows, records writes.

    `rows` answers every query; `results` answers queries in order, one list per execute.
    """

    def __init__(self, rows=None, results=None, execute_error=None, commit_error=None):
        self.rows = list(rows or [])
        self.results = list(results or [])
        self.execute_error = execute_error
        self.commit_error = commit_error
        self.statements = []
        self.added = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt):
        self.statements.append(stmt)
        if self.execute_error:
            raise self.execute_error
        if self.results:
            return FakeResult(self.results.pop(0))
        return FakeResult(self.rows)

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        if self.commit_error:
            raise self.commit_error
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def refresh(self, obj):
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
