import logging

from django.contrib.auth.decorators import login_required
from django.http import Http404, JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from shopadmin.catalog import assets
from shopadmin.core.utils import create_audit_log
from . import tokens
from .aggregation import load_collections
from .endpoints import EndpointError, RecordNotFound, get_endpoint
from .entities import STORE, catalog_entities, get_entity
from .forms import EntityForm
from .listing import EntityListPage
from .navigation import MessagesNotifier, RedirectNavigator

logger = logging.getLogger('shopadmin.dashboard')

FORM_EXPIRED = 'This form has expired. Please submit it again.'


def _catalog_entity(collection):
    try:
        entity = get_entity(collection)
    except LookupError:
        raise Http404(f"Unknown collection '{collection}'")
    if entity is STORE:
        raise Http404(f"Unknown collection '{collection}'")
    return entity


def _store_context(endpoint, store_id):
    """Stores of the signed-in user plus the current one; 404 when it is not theirs"""
    try:
        stores = endpoint.list(STORE.collection, None) or []
    except EndpointError as e:
        logger.error(f"Failed to load stores: {e.message}")
        stores = []
    store = next((s for s in stores if str(s['id']) == str(store_id)), None)
    if store is None:
        raise Http404('Store not found')
    return {
        'store': store,
        'stores': stores,
        'store_id': str(store_id),
        'entities': catalog_entities(),
    }


def _retrieve(endpoint, entity, store_id, record_id):
    try:
        return endpoint.retrieve(entity.collection, store_id, record_id)
    except RecordNotFound:
        raise Http404(f"{entity.singular} not found")


def _form_response(request, form, context, references=None, template='dashboard/form.html'):
    context.update({
        'form': form,
        'fields': form.fields(references),
        'form_token': tokens.issue_form_token(request.user),
        'entity': form.entity,
    })
    if form.editing:
        context['delete_path'] = form.entity.delete_path(form.store_id, form.record_id)
    return render(request, template, context)


def _save(request, form):
    """
    Run a POSTed form through upload, validation and submit. Returns a redirect on
    success, or when the rendered form was already submitted once.
    """
    entity = form.entity
    values = entity.schema.values_from_querydict(request.POST)
    try:
        first_submit = tokens.consume_form_token(request.user, request.POST.get(tokens.FIELD_NAME))
    except tokens.InvalidFormToken:
        form.values = values
        form.notifier.error(FORM_EXPIRED)
        return None
    if not first_submit:
        return redirect(entity.list_path(form.store_id) if form.store_id else '/')

    values = form.attach_uploads(values, request.FILES.getlist('upload'), assets.upload_image)
    if values is not None and form.submit(values):
        return form.navigator.response()
    return None


def _delete(request, form, context):
    """GET shows the confirmation step, POST with ``confirm`` performs the delete"""
    if request.method == 'POST':
        if request.POST.get('confirm'):
            form.request_delete()
        if form.confirm_delete():
            return form.navigator.response()
        return redirect(form.entity.edit_path(form.store_id, form.record_id))

    form.request_delete()
    context.update({
        'form': form,
        'entity': form.entity,
        'cancel_path': form.entity.edit_path(form.store_id, form.record_id),
    })
    return render(request, 'dashboard/confirm_delete.html', context)


@login_required
def setup(request):
    """Open the first store of the user, or ask them to create one"""
    endpoint = get_endpoint(request)
    try:
        stores = endpoint.list(STORE.collection, None) or []
    except EndpointError as e:
        logger.error(f"Failed to load stores for {request.user.username}: {e.message}")
        stores = []

    if request.method == 'GET' and stores and 'new' not in request.GET:
        return redirect(STORE.list_path(stores[0]['id']))

    form = EntityForm(STORE, None, endpoint, RedirectNavigator(), MessagesNotifier(request))
    if request.method == 'POST':
        response = _save(request, form)
        if response:
            return response
    return _form_response(request, form, {'stores': stores}, template='dashboard/setup.html')


@login_required
def overview(request, store_id):
    """Record counts for every collection of the store"""
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)
    entities = catalog_entities()
    collections = load_collections(endpoint, store_id, [e.collection for e in entities], include_archived=True)
    products = collections.get('products', [])
    context.update({
        'cards': [{'entity': e, 'count': len(collections.get(e.collection, []))} for e in entities],
        'featured_count': sum(1 for p in products if p.get('is_featured') and not p.get('is_archived')),
        'archived_count': sum(1 for p in products if p.get('is_archived')),
    })
    return render(request, 'dashboard/overview.html', context)


@login_required
def entity_list(request, store_id, collection):
    entity = _catalog_entity(collection)
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)

    page = EntityListPage(entity, store_id, endpoint, origin=request.build_absolute_uri('/'))
    page.load()

    query = request.GET.get('q', '').strip()
    rows = page.search(query)
    sort = request.GET.get('sort', '')
    descending = request.GET.get('dir') == 'desc'
    if sort and page.sortable(sort):
        rows = page.sort(sort, descending=descending, rows=rows)

    context.update({
        'entity': entity,
        'page': page,
        'query': query,
        'sort': sort,
        'descending': descending,
        'table': [
            {'cells': [row.get(column) for column, _ in entity.columns], 'edit_path': page.edit_path(row)}
            for row in rows
        ],
    })
    return render(request, 'dashboard/list.html', context)


@login_required
def entity_form(request, store_id, collection, record_id=None):
    """Create form (no record_id) or edit form of one record"""
    entity = _catalog_entity(collection)
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)

    initial = _retrieve(endpoint, entity, store_id, record_id) if record_id is not None else None
    form = EntityForm(entity, store_id, endpoint, RedirectNavigator(), MessagesNotifier(request),
                      initial_data=initial)

    if request.method == 'POST':
        response = _save(request, form)
        if response:
            return response

    references = load_collections(endpoint, store_id, entity.references)
    return _form_response(request, form, context, references)


@login_required
def entity_delete(request, store_id, collection, record_id):
    entity = _catalog_entity(collection)
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)
    initial = _retrieve(endpoint, entity, store_id, record_id)
    form = EntityForm(entity, store_id, endpoint, RedirectNavigator(), MessagesNotifier(request),
                      initial_data=initial)
    return _delete(request, form, context)


@login_required
def store_settings(request, store_id):
    """Rename the store; the delete button leads to store_delete"""
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)
    form = EntityForm(STORE, store_id, endpoint, RedirectNavigator(), MessagesNotifier(request),
                      initial_data=context['store'])

    if request.method == 'POST':
        response = _save(request, form)
        if response:
            return response

    context['api_base'] = f"{request.build_absolute_uri('/').rstrip('/')}/api/{store_id}"
    return _form_response(request, form, context, template='dashboard/settings.html')


@login_required
def store_delete(request, store_id):
    endpoint = get_endpoint(request)
    context = _store_context(endpoint, store_id)
    form = EntityForm(STORE, store_id, endpoint, RedirectNavigator(), MessagesNotifier(request),
                      initial_data=context['store'])
    return _delete(request, form, context)


@login_required
@require_POST
def upload(request, store_id):
    """Forward an image to the asset host and return its URL"""
    endpoint = get_endpoint(request)
    _store_context(endpoint, store_id)

    uploaded = request.FILES.get('file')
    if uploaded is None:
        return JsonResponse({'error': 'No file provided'}, status=400)

    try:
        url = assets.upload_image(uploaded, folder=f"store-{store_id}")
    except assets.AssetUploadError as e:
        logger.warning(f"Upload by {request.user.username} to store {store_id} failed: {str(e)}")
        return JsonResponse({'error': str(e)}, status=400)

    create_audit_log(
        request=request, action='upload', model_name='Image', object_id=uploaded.name[:100],
        object_name=url[:255], store_id=store_id,
    )
    return JsonResponse({'url': url})
