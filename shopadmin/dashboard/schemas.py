"""
Declarative field rules for the entity forms.

Each entity lists its fields as ``FieldRule`` entries; ``FormSchema`` turns
the table into a DRF serializer so validation runs through the same
machinery as the API, and returns per-field messages.
"""
from decimal import Decimal

from django.core.validators import RegexValidator
from rest_framework import serializers

from shopadmin.catalog.validators import validate_image_url
from shopadmin.core.records import validation_errors

STRING = 'string'
URL = 'url'
URL_LIST = 'url_list'
DECIMAL = 'decimal'
BOOLEAN = 'boolean'
REFERENCE = 'reference'


class FieldRule:
    """Constraints for one form field"""

    def __init__(self, name, kind=STRING, label=None, required=True, min_length=None, max_length=None,
                 positive=False, pattern=None, pattern_message=None, min_items=None, reference=None,
                 message=None, placeholder=''):
        self.name = name
        self.kind = kind
        self.label = label or name.replace('_', ' ').capitalize()
        self.required = required
        self.min_length = min_length
        self.max_length = max_length
        self.positive = positive
        self.pattern = pattern
        self.pattern_message = pattern_message
        self.min_items = min_items
        self.reference = reference
        self.message = message
        self.placeholder = placeholder

    def __repr__(self):
        return f"FieldRule({self.name!r}, {self.kind!r})"

    def build_field(self):
        """Return the serializer field enforcing this rule"""
        error_messages = {}
        if self.message:
            error_messages = {'required': self.message, 'blank': self.message, 'min_length': self.message}

        if self.kind == BOOLEAN:
            return serializers.BooleanField(required=False, default=False)

        if self.kind == DECIMAL:
            kwargs = {'max_digits': 10, 'decimal_places': 2, 'required': self.required}
            if self.positive:
                kwargs['min_value'] = Decimal('0.01')
                error_messages.setdefault('min_value', f"{self.label} must be greater than 0.")
            return serializers.DecimalField(error_messages=error_messages, **kwargs)

        if self.kind == URL:
            error_messages.setdefault('blank', f"{self.label} is required.")
            return serializers.CharField(required=self.required, allow_blank=not self.required,
                                         validators=[validate_image_url], error_messages=error_messages)

        if self.kind == URL_LIST:
            min_items = self.min_items or (1 if self.required else 0)
            error_messages.setdefault('min_length', f"Add at least {min_items} image{'s' if min_items > 1 else ''}.")
            error_messages.setdefault('empty', error_messages['min_length'])
            return serializers.ListField(
                child=serializers.CharField(validators=[validate_image_url]),
                required=self.required,
                allow_empty=min_items == 0,
                min_length=min_items or None,
                error_messages=error_messages,
            )

        if self.kind == REFERENCE:
            error_messages.setdefault('blank', f"{self.label} is required.")
            error_messages.setdefault('required', f"{self.label} is required.")
            return serializers.CharField(required=self.required, allow_blank=not self.required,
                                         error_messages=error_messages)

        validators = []
        if self.pattern:
            validators.append(RegexValidator(self.pattern, message=self.pattern_message or 'Invalid format'))
        if self.min_length:
            error_messages.setdefault('min_length', f"Must contain at least {self.min_length} character(s).")
        if self.max_length:
            error_messages.setdefault('max_length', f"Must contain at most {self.max_length} character(s).")
        return serializers.CharField(
            required=self.required,
            allow_blank=not self.required,
            min_length=self.min_length,
            max_length=self.max_length,
            validators=validators,
            error_messages=error_messages,
        )


class FormSchema:
    """Validation table for one entity: field name -> FieldRule"""

    def __init__(self, rules):
        self.rules = list(rules)
        self.serializer_class = type(
            'FormSchemaSerializer',
            (serializers.Serializer,),
            {rule.name: rule.build_field() for rule in self.rules},
        )

    def __iter__(self):
        return iter(self.rules)

    def __getitem__(self, name):
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

    @property
    def field_names(self):
        return [rule.name for rule in self.rules]

    def validate(self, values):
        """
        Validate raw form values.

        Returns:
            (cleaned, errors): cleaned is a dict of typed values, or None when
            errors (field -> [messages]) is not empty.
        """
        serializer = self.serializer_class(data=values)
        if serializer.is_valid():
            return dict(serializer.validated_data), {}
        return None, validation_errors(serializers.ValidationError(serializer.errors))

    def values_from_querydict(self, data):
        """Collect raw values for the schema fields from a POST QueryDict"""
        values = {}
        for rule in self.rules:
            if rule.kind == BOOLEAN:
                values[rule.name] = data.get(rule.name) in ('on', 'true', 'True', '1')
            elif rule.kind == URL_LIST:
                urls = []
                for item in data.getlist(rule.name):
                    urls.extend(line.strip() for line in item.splitlines() if line.strip())
                values[rule.name] = urls
            elif rule.name in data:
                values[rule.name] = data.get(rule.name, '').strip()
        return values
