"""EntityListPage: the collection screen of one entity (table plus API reference)"""
import logging

logger = logging.getLogger('shopadmin.dashboard')

# Columns whose display value is formatted; sort on the raw value instead
SORT_FIELDS = {
    'created_at': 'created_at_iso',
    'price': 'price_value',
}


class ApiRoute:
    def __init__(self, method, access, url):
        self.method = method
        self.access = access
        self.url = url

    def __repr__(self):
        return f"ApiRoute({self.method} {self.url} [{self.access}])"

    def __eq__(self, other):
        if not isinstance(other, ApiRoute):
            return NotImplemented
        return (self.method, self.access, self.url) == (other.method, other.access, other.url)


class EntityListPage:
    def __init__(self, entity, store_id, endpoint, origin=''):
        self.entity = entity
        self.store_id = str(store_id)
        self.endpoint = endpoint
        self.origin = origin.rstrip('/')
        self.rows = []

    def load(self):
        """Fetch the collection and map it to display rows; a failed fetch shows an empty table"""
        try:
            records = self.endpoint.list(self.entity.collection, self.store_id, include_archived=True) or []
        except Exception as e:
            logger.error(f"Failed to load {self.entity.collection} for store {self.store_id}: {str(e)}")
            records = []
        self.rows = [self.entity.to_row(record) for record in records]
        return self.rows

    @property
    def title(self):
        return f"{self.entity.plural}: {len(self.rows)}"

    @property
    def description(self):
        return self.entity.list_description

    @property
    def new_path(self):
        return self.entity.new_path(self.store_id)

    def edit_path(self, row):
        return self.entity.edit_path(self.store_id, row['id'])

    def search(self, query, rows=None):
        """Rows whose search column contains ``query`` (case-insensitive)"""
        rows = self.rows if rows is None else rows
        if not query:
            return list(rows)
        needle = query.strip().lower()
        key = self.entity.search_key
        return [row for row in rows if needle in str(row.get(key, '')).lower()]

    def sort(self, key, descending=False, rows=None):
        rows = self.rows if rows is None else rows
        field = SORT_FIELDS.get(key, key)

        def sort_key(row):
            value = row.get(field)
            if isinstance(value, str):
                value = value.lower()
            return (value is None, value if value is not None else '')

        return sorted(rows, key=sort_key, reverse=descending)

    def sortable(self, key):
        return key in SORT_FIELDS or any(key == column for column, _ in self.entity.columns)

    @property
    def api_base(self):
        return f"{self.origin}/api/{self.store_id}"

    @property
    def api_routes(self):
        """Conventional REST paths for the entity, as shown in the API panel"""
        collection_url = f"{self.api_base}/{self.entity.collection}/"
        record_url = f"{collection_url}{{{self.entity.id_param}}}/"
        return [
            ApiRoute('GET', 'public', collection_url),
            ApiRoute('GET', 'public', record_url),
            ApiRoute('POST', 'admin', collection_url),
            ApiRoute('PATCH', 'admin', record_url),
            ApiRoute('DELETE', 'admin', record_url),
        ]
