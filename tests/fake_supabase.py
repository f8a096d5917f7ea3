"""In-memory stand-in for the parts of the Supabase client the services use."""
import copy
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from types import SimpleNamespace


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = 'select'
        self.payload = None
        self.columns = '*'
        self.conflict = None
        self.filters = []
        self.ordering = None
        self.row_limit = None

    # Actions
    def select(self, columns='*', count=None):
        self.action, self.columns = 'select', columns
        return self

    def insert(self, rows):
        self.action, self.payload = 'insert', rows
        return self

    def update(self, values):
        self.action, self.payload = 'update', values
        return self

    def upsert(self, row, on_conflict=None):
        self.action, self.payload, self.conflict = 'upsert', row, on_conflict
        return self

    def delete(self):
        self.action = 'delete'
        return self

    # Filters
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def is_(self, column, value):
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def gt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) > value)
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def _project(self, row):
        if self.columns.strip() == '*':
            return copy.deepcopy(row)
        names = [name.strip() for name in self.columns.split(',')]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self):
        self.db.check_failure(self.table, self.action)
        rows = self.db.tables[self.table]

        if self.action == 'insert':
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.new_row(row) for row in payload]
            rows.extend(inserted)
            return FakeResult(copy.deepcopy(inserted))

        if self.action == 'upsert':
            keys = [key.strip() for key in (self.conflict or 'id').split(',')]
            for row in rows:
                if all(key in self.payload and row.get(key) == self.payload[key] for key in keys):
                    row.update(copy.deepcopy(self.payload))
                    return FakeResult([copy.deepcopy(row)])
            inserted = self.db.new_row(self.payload)
            rows.append(inserted)
            return FakeResult([copy.deepcopy(inserted)])

        matched = [row for row in rows if self._matches(row)]

        if self.action == 'update':
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResult(copy.deepcopy(matched))

        if self.action == 'delete':
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResult(copy.deepcopy(matched))

        if self.ordering:
            column, desc = self.ordering
            matched = sorted(matched, key=lambda row: (row.get(column) is None, row.get(column) or ''), reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return FakeResult([self._project(row) for row in matched])


class FakeRpc:
    def __init__(self, db, name, params):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        self.db.check_failure(self.name, 'rpc')
        self.db.rpc_calls.append((self.name, self.params))
        return FakeResult(None)


class FakeBucket:
    def __init__(self, db, bucket):
        self.db, self.bucket = db, bucket

    def create_signed_url(self, path, expires_in):
        return {'signedURL': f"https://storage.test/{self.bucket}/{path}?expires={expires_in}"}

    def remove(self, paths):
        self.db.removed_files.extend((self.bucket, path) for path in paths)
        return [{'name': path} for path in paths]


class FakeAuthAdmin:
    def __init__(self, db):
        self.db = db

    def create_user(self, attributes):
        user = SimpleNamespace(id=str(uuid.uuid4()), email=attributes.get('email'))
        self.db.created_users.append(attributes)
        return SimpleNamespace(user=user)

    def delete_user(self, user_id):
        self.db.deleted_users.append(user_id)


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.admin = FakeAuthAdmin(db)

    def get_user(self, token):
        if token not in self.db.tokens:
            raise Exception('invalid JWT')
        return SimpleNamespace(user=SimpleNamespace(id=self.db.tokens[token]))


class FakeSupabase:
    def __init__(self):
        self.auth = FakeAuth(self)
        self.storage = SimpleNamespace(from_=lambda bucket: FakeBucket(self, bucket))
        self.reset()

    def reset(self):
        self.tables = defaultdict(list)
        self.tokens = {}
        self.failures = {}
        self.rpc_calls = []
        self.removed_files = []
        self.created_users = []
        self.deleted_users = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self, name, params)

    def new_row(self, row):
        row = copy.deepcopy(row)
        row.setdefault('id', str(uuid.uuid4()))
        row.setdefault('created_at', datetime.now(timezone.utc).isoformat())
        return row

    # Test helpers
    def seed(self, table, *rows):
        created = [self.new_row(row) for row in rows]
        self.tables[table].extend(created)
        return created[0] if len(created) == 1 else created

    def rows(self, table):
        return self.tables[table]

    def login(self, user_id, token=None):
        token = token or f"token-{user_id}"
        self.tokens[token] = user_id
        return {'Authorization': f'Bearer {token}'}

    def fail(self, target, action, times=1):
        """Make the next `times` executions of action on target raise"""
        self.failures[(target, action)] = times

    def check_failure(self, target, action):
        remaining = self.failures.get((target, action), 0)
        if remaining:
            self.failures[(target, action)] = remaining - 1
            raise Exception(f"simulated {action} failure on {target}")
