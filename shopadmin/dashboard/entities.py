"""
Entity registry for the dashboard.

Every screen (list page, create/edit form, delete confirmation) is driven by
an ``EntityConfig``: its labels and toasts, its validation table, the shape
of its list rows and where to go after a save or delete.
"""
from shopadmin.catalog.validators import HEX_COLOR
from .formatting import format_date, format_price, to_decimal
from .schemas import FieldRule, FormSchema, URL, URL_LIST, DECIMAL, BOOLEAN, REFERENCE

ENTITIES = {}


class EntityConfig:
    def __init__(self, collection, singular, plural, id_param, rules, list_description='',
                 search_key='name', references=(), delete_guidance='', image_field=None,
                 columns=(), defaults=None):
        self.collection = collection
        self.singular = singular
        self.plural = plural
        self.id_param = id_param
        self.schema = FormSchema(rules)
        self.list_description = list_description or f"Manage {plural}"
        self.search_key = search_key
        self.references = tuple(references)
        self.delete_guidance = delete_guidance
        self.image_field = image_field
        self.columns = tuple(columns)
        self.defaults = defaults or {}

    def __repr__(self):
        return f"EntityConfig({self.collection!r})"

    # Texts

    def title(self, editing):
        return f"Edit {self.singular}" if editing else f"Create a {self.singular}"

    def description(self, editing):
        return f"Edit your {self.singular}" if editing else f"Add a new {self.singular.lower()}"

    def action_label(self, editing):
        return 'Save Changes' if editing else 'Create'

    def saved_message(self, editing):
        return f"{self.singular} {'updated' if editing else 'created'} successfully"

    @property
    def deleted_message(self):
        return f"{self.singular} deleted successfully"

    # Values

    def default_values(self):
        values = {}
        for rule in self.schema:
            if rule.kind == BOOLEAN:
                values[rule.name] = False
            elif rule.kind == URL_LIST:
                values[rule.name] = []
            else:
                values[rule.name] = ''
        values.update(self.defaults)
        return values

    def to_initial(self, record):
        """Form values for an existing record (ids as strings)"""
        if record is None:
            return self.default_values()
        values = {}
        for rule in self.schema:
            value = record.get(rule.name)
            if rule.kind == REFERENCE:
                values[rule.name] = '' if value is None else str(value)
            elif rule.kind == URL_LIST:
                values[rule.name] = [item['url'] if isinstance(item, dict) else item for item in value or []]
            elif rule.kind == BOOLEAN:
                values[rule.name] = bool(value)
            else:
                values[rule.name] = '' if value is None else str(value)
        return values

    def to_payload(self, cleaned):
        """Request body for create/update from validated form values"""
        payload = {}
        for rule in self.schema:
            if rule.name not in cleaned:
                continue
            value = cleaned[rule.name]
            if rule.kind == URL_LIST:
                value = [{'url': url} for url in value]
            elif rule.kind == DECIMAL and value is not None:
                value = str(value)
            payload[rule.name] = value
        return payload

    # Rows

    def to_row(self, record):
        """Display row for the list page"""
        row = {
            'id': str(record['id']),
            'created_at': format_date(record.get('created_at')),
            'created_at_iso': record.get('created_at') or '',
        }
        row.update(self.project(record))
        return row

    def project(self, record):
        return {rule.name: record.get(rule.name, '') for rule in self.schema if rule.kind != URL_LIST}

    # Navigation

    def list_path(self, store_id):
        return f"/{store_id}/{self.collection}/"

    def new_path(self, store_id):
        return f"/{store_id}/{self.collection}/new/"

    def edit_path(self, store_id, record_id):
        return f"/{store_id}/{self.collection}/{record_id}/"

    def delete_path(self, store_id, record_id):
        return f"/{store_id}/{self.collection}/{record_id}/delete/"

    def redirect_path(self, event, store_id, record=None):
        """Where to navigate after 'created', 'updated' or 'deleted'"""
        return self.list_path(store_id)

    def option_label(self, record):
        return record.get('name', str(record.get('id')))


class BillboardConfig(EntityConfig):
    def project(self, record):
        return {'label': record.get('label', '')}

    def option_label(self, record):
        return record.get('label', str(record.get('id')))


class CategoryConfig(EntityConfig):
    def project(self, record):
        billboard = record.get('billboard') or {}
        return {'name': record.get('name', ''), 'billboard_label': billboard.get('label', '')}


class ProductConfig(EntityConfig):
    def project(self, record):
        category = record.get('category') or {}
        size = record.get('size') or {}
        color = record.get('color') or {}
        return {
            'name': record.get('name', ''),
            'is_featured': bool(record.get('is_featured')),
            'is_archived': bool(record.get('is_archived')),
            'price': format_price(record.get('price')),
            'price_value': to_decimal(record.get('price')),
            'category': category.get('name', ''),
            'size': size.get('name', ''),
            'color': color.get('value', ''),
        }


class StoreConfig(EntityConfig):
    """The store itself: saved stores open their overview, deleted ones go back to setup"""

    def title(self, editing):
        return 'Settings' if editing else 'Create store'

    def description(self, editing):
        return 'Manage store preferences' if editing else 'Add a new store to manage products and categories'

    def saved_message(self, editing):
        return 'Store updated.' if editing else 'Store created.'

    @property
    def deleted_message(self):
        return 'Store deleted.'

    def list_path(self, store_id):
        return f"/{store_id}/"

    def edit_path(self, store_id, record_id):
        return f"/{record_id}/settings/"

    def delete_path(self, store_id, record_id):
        return f"/{record_id}/settings/delete/"

    def redirect_path(self, event, store_id, record=None):
        if event == 'created':
            return f"/{record['id']}/"
        if event == 'updated':
            return f"/{store_id}/settings/"
        return '/'


def register(config):
    ENTITIES[config.collection] = config
    return config


def get_entity(collection):
    try:
        return ENTITIES[collection]
    except KeyError:
        raise LookupError(f"Unknown collection '{collection}'")


def catalog_entities():
    return [config for config in ENTITIES.values() if config.collection != 'stores']


STORE = register(StoreConfig(
    collection='stores',
    singular='Store',
    plural='Stores',
    id_param='storeId',
    rules=[
        FieldRule('name', label='Name', min_length=1, message='Store name is required.', placeholder='Store name'),
    ],
    delete_guidance='Make sure you removed all products and categories first.',
))

BILLBOARD = register(BillboardConfig(
    collection='billboards',
    singular='Billboard',
    plural='Billboards',
    id_param='billboardId',
    rules=[
        FieldRule('label', label='Label', min_length=3, max_length=25,
                  message='Label is required (min 3 characters).', placeholder='Billboard label'),
        FieldRule('image_url', kind=URL, label='Background Image'),
    ],
    list_description='Billboards are the main way to advertise your products and services. '
                     'You can create a billboard by clicking on the button.',
    search_key='label',
    delete_guidance='Make sure you deleted all categories using this billboard first',
    image_field='image_url',
    columns=(('label', 'Label'), ('created_at', 'Date')),
))

CATEGORY = register(CategoryConfig(
    collection='categories',
    singular='Category',
    plural='Categories',
    id_param='categoryId',
    rules=[
        FieldRule('name', label='Name', min_length=1, message='Name is required.', placeholder='Category name'),
        FieldRule('billboard_id', kind=REFERENCE, label='Billboard', reference='billboards'),
    ],
    search_key='name',
    references=('billboards',),
    delete_guidance='Make sure you deleted all products using this category first',
    columns=(('name', 'Name'), ('billboard_label', 'Billboard'), ('created_at', 'Date')),
))

SIZE = register(EntityConfig(
    collection='sizes',
    singular='Size',
    plural='Sizes',
    id_param='sizeId',
    rules=[
        FieldRule('name', label='Name', min_length=1, message='Name is required.', placeholder='Size name'),
        FieldRule('value', label='Value', min_length=1, message='Value is required.', placeholder='Size value'),
    ],
    search_key='name',
    delete_guidance='Make sure you deleted all products using this size first',
    columns=(('name', 'Name'), ('value', 'Value'), ('created_at', 'Date')),
))

COLOR = register(EntityConfig(
    collection='colors',
    singular='Color',
    plural='Colors',
    id_param='colorId',
    rules=[
        FieldRule('name', label='Name', min_length=2, message='Name is required (min 2 characters).',
                  placeholder='Color name'),
        FieldRule('value', label='Value', min_length=4, max_length=9, pattern=HEX_COLOR,
                  pattern_message='String must be a valid hex code', placeholder='#000000'),
    ],
    search_key='name',
    delete_guidance='Make sure you deleted all products using this color first',
    columns=(('name', 'Name'), ('value', 'Value'), ('created_at', 'Date')),
))

PRODUCT = register(ProductConfig(
    collection='products',
    singular='Product',
    plural='Products',
    id_param='productId',
    rules=[
        FieldRule('images', kind=URL_LIST, label='Images', min_items=1),
        FieldRule('name', label='Name', min_length=1, message='Name is required.', placeholder='Product name'),
        FieldRule('price', kind=DECIMAL, label='Price', positive=True, placeholder='9.99'),
        FieldRule('category_id', kind=REFERENCE, label='Category', reference='categories'),
        FieldRule('size_id', kind=REFERENCE, label='Size', reference='sizes'),
        FieldRule('color_id', kind=REFERENCE, label='Color', reference='colors'),
        FieldRule('is_featured', kind=BOOLEAN, label='Featured'),
        FieldRule('is_archived', kind=BOOLEAN, label='Archived'),
    ],
    search_key='name',
    references=('categories', 'sizes', 'colors'),
    delete_guidance='Something went wrong.',
    image_field='images',
    columns=(
        ('name', 'Name'), ('is_archived', 'Archived'), ('is_featured', 'Featured'), ('price', 'Price'),
        ('category', 'Category'), ('size', 'Size'), ('color', 'Color'), ('created_at', 'Date'),
    ),
))
