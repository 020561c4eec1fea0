"""In-process stand-ins for the hosted identity provider and record store."""

from quiz_app.guard.errors import ErrorKind, IdentityServiceError


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIdentity:
    def __init__(self, error=None, delete_error=None, sign_in_error=None):
        self.error = error
        self.sign_in_error = sign_in_error
        self.delete_error = delete_error
        self.created = []
        self.deleted = []
        self.passwords = {}
        self.attempts = 0

    async def create_account(self, email, password, metadata):
        self.attempts += 1
        if self.error is not None:
            raise self.error
        ident = f"id-{len(self.created) + 1}"
        self.created.append((ident, email, dict(metadata)))
        self.passwords[email] = password
        return ident

    async def sign_in(self, email, password):
        if self.sign_in_error is not None:
            raise self.sign_in_error
        if self.passwords.get(email) != password:
            raise IdentityServiceError(ErrorKind.INVALID_CREDENTIALS, "Invalid login credentials")
        return f"token-for-{email}"

    async def delete_identity(self, identity_id):
        self.deleted.append(identity_id)
        if self.delete_error is not None:
            raise self.delete_error

    async def aclose(self):
        return None


class FakeRecords:
    def __init__(self, existing=(), insert_error=None, exists_error=None):
        self.existing = set(existing)
        self.insert_error = insert_error
        self.exists_error = exists_error
        self.rows = []
        self.exists_calls = 0

    async def email_exists(self, email):
        self.exists_calls += 1
        if self.exists_error is not None:
            raise self.exists_error
        return email in self.existing

    async def insert_user(self, row):
        if self.insert_error is not None:
            raise self.insert_error
        self.rows.append(row)
        self.existing.add(row.email)
        return row.id

    async def aclose(self):
        return None
