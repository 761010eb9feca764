"""
EntityForm: create, edit and delete one record of an entity.

The form owns its values, per-field errors and a FormState. Persistence goes
through an endpoint, navigation and toasts through the collaborators it is
given, which keeps the lifecycle independent of HTTP.
"""
import logging
import threading

from shopadmin.catalog.assets import AssetUploadError
from .endpoints import EndpointError, ValidationFailed
from .entities import get_entity
from .schemas import REFERENCE, URL_LIST
from .states import Idle, Submitting, Confirming, Error

logger = logging.getLogger('shopadmin.dashboard')

GENERIC_FAILURE = 'Something went wrong.'


class EntityForm:
    def __init__(self, entity, store_id, endpoint, navigator, notifier, initial_data=None):
        self.entity = entity
        self.store_id = None if store_id is None else str(store_id)
        self.endpoint = endpoint
        self.navigator = navigator
        self.notifier = notifier
        self.initial_data = initial_data
        self.values = entity.to_initial(initial_data)
        self.errors = {}
        self.state = Idle
        self._lock = threading.Lock()

    @property
    def editing(self):
        return self.initial_data is not None

    @property
    def record_id(self):
        return str(self.initial_data['id']) if self.editing else None

    @property
    def submitting(self):
        return self.state.is_busy

    @property
    def title(self):
        return self.entity.title(self.editing)

    @property
    def description(self):
        return self.entity.description(self.editing)

    @property
    def action_label(self):
        return self.entity.action_label(self.editing)

    @property
    def toast_message(self):
        return self.entity.saved_message(self.editing)

    def attach_uploads(self, values, files, uploader):
        """
        Replace uploaded files with the URLs returned by the asset host.
        Returns the updated values, or None when an upload failed.
        """
        field = self.entity.image_field
        if not field or not files:
            return values
        values = dict(values)
        folder = f"store-{self.store_id}" if self.store_id else None
        try:
            urls = [uploader(upload, folder=folder) for upload in files]
        except AssetUploadError as e:
            logger.warning(f"Image upload for {self.entity.collection} failed: {str(e)}")
            self.values = values
            self.errors = {field: [str(e)]}
            return None
        if self.entity.schema[field].kind == URL_LIST:
            values[field] = list(values.get(field) or []) + urls
        else:
            values[field] = urls[-1]
        return values

    def validate(self, values):
        cleaned, errors = self.entity.schema.validate(values)
        self.errors = errors
        return cleaned

    def submit(self, values):
        """
        Create or update the record. Returns True when saved (and navigated).
        A submit while another one is in flight does nothing.
        """
        if not self._lock.acquire(blocking=False):
            logger.debug(f"Ignoring submit for {self.entity.collection}: already submitting")
            return False
        try:
            self.values = dict(values)
            cleaned = self.validate(values)
            if cleaned is None:
                self.state = Idle
                return False

            self.state = Submitting
            payload = self.entity.to_payload(cleaned)
            try:
                if self.editing:
                    record = self.endpoint.update(self.entity.collection, self.store_id, self.record_id, payload)
                else:
                    record = self.endpoint.create(self.entity.collection, self.store_id, payload)
            except ValidationFailed as e:
                logger.warning(f"{self.entity.collection} rejected by endpoint: {e.errors}")
                self.errors = e.errors
                return self._fail(GENERIC_FAILURE)
            except EndpointError as e:
                logger.warning(f"Saving {self.entity.collection} failed: {e.message}")
                return self._fail(GENERIC_FAILURE)
            except Exception as e:
                logger.error(f"Unexpected error saving {self.entity.collection}: {str(e)}", exc_info=True)
                return self._fail(GENERIC_FAILURE)

            event = 'updated' if self.editing else 'created'
            self.navigator.push(self.entity.redirect_path(event, self.store_id, record or self.initial_data))
            self.navigator.refresh()
            self.notifier.success(self.toast_message)
            return True
        finally:
            if self.state.is_busy:
                self.state = Idle
            self._lock.release()

    def request_delete(self):
        """Open the confirmation step; only records that exist can be deleted"""
        if not self.editing or self.submitting:
            return False
        self.state = Confirming
        return True

    def cancel_delete(self):
        if self.state == Confirming:
            self.state = Idle

    def confirm_delete(self):
        """Delete the record. Returns True when deleted (and navigated)."""
        if self.state != Confirming:
            logger.warning(f"Delete of {self.entity.collection} {self.record_id} attempted without confirmation")
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            self.state = Submitting
            try:
                self.endpoint.delete(self.entity.collection, self.store_id, self.record_id)
            except EndpointError as e:
                logger.warning(f"Deleting {self.entity.collection} {self.record_id} failed: {e.message}")
                return self._fail(self.entity.delete_guidance or GENERIC_FAILURE)
            except Exception as e:
                logger.error(f"Unexpected error deleting {self.entity.collection} {self.record_id}: {str(e)}",
                             exc_info=True)
                return self._fail(self.entity.delete_guidance or GENERIC_FAILURE)

            self.navigator.push(self.entity.redirect_path('deleted', self.store_id, self.initial_data))
            self.navigator.refresh()
            self.notifier.success(self.entity.deleted_message)
            return True
        finally:
            if self.state.is_busy:
                self.state = Idle
            self._lock.release()

    def _fail(self, message):
        self.notifier.error(message)
        self.state = Error(message)
        return False

    def fields(self, references=None):
        """Field descriptors for rendering, with reference options resolved"""
        references = references or {}
        fields = []
        for rule in self.entity.schema:
            field = {
                'name': rule.name,
                'label': rule.label,
                'kind': rule.kind,
                'value': self.values.get(rule.name, ''),
                'errors': self.errors.get(rule.name, []),
                'placeholder': rule.placeholder,
                'upload': rule.name == self.entity.image_field,
            }
            if rule.kind == REFERENCE:
                target = get_entity(rule.reference)
                field['options'] = [
                    {'value': str(record['id']), 'label': target.option_label(record)}
                    for record in references.get(rule.reference, [])
                ]
            elif rule.kind == URL_LIST:
                field['text'] = '\n'.join(field['value'] or [])
            fields.append(field)
        return fields
