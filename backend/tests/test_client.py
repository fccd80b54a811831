"""
Client-side resource cache and the httpx API client.

The end-to-end tests route the client's httpx transport into the Flask test
client, so they exercise the real API without a running server.
"""

from decimal import Decimal

import httpx
import pytest

from komersh.client import MUTATION_INVALIDATIONS, ApiClientError, KomershClient, ResourceStore

PASSWORD = 'Password123!'


class TestResourceStore:

    def test_put_get_has(self):
        store = ResourceStore()
        store.put('inventory', [{'id': 1}])
        store.put('inventory', {'id': 1}, id=1)

        assert store.get('inventory') == [{'id': 1}]
        assert store.get('inventory', 1) == {'id': 1}
        assert store.has('inventory', 1)
        assert not store.has('inventory', 2)
        assert store.get('tasks', default='missing') == 'missing'

    def test_invalidate_whole_resource(self):
        store = ResourceStore()
        store.put('inventory', [])
        store.put('inventory', {}, id=1)
        store.put('tasks', [])

        store.invalidate('inventory')
        assert store.keys() == [('tasks', None)]

    def test_invalidate_single_row_drops_collection_too(self):
        store = ResourceStore()
        store.put('inventory', [])
        store.put('inventory', {}, id=1)
        store.put('inventory', {}, id=2)

        store.invalidate('inventory', 1)
        assert sorted(store.keys()) == [('inventory', 2)]

    def test_subscribers_are_called_and_can_unsubscribe(self):
        store = ResourceStore()
        calls = []
        unsubscribe = store.subscribe('inventory', calls.append)

        store.invalidate('inventory')
        store.invalidate('tasks')
        assert calls == ['inventory']

        unsubscribe()
        store.invalidate('inventory')
        assert calls == ['inventory']

    def test_invalidate_for_mutation(self):
        store = ResourceStore()
        for resource in ('inventory', 'sales-orders', 'tasks'):
            store.put(resource, [])

        touched = store.invalidate_for('sell_inventory')
        assert 'sales-orders' in touched
        assert store.keys() == [('tasks', None)]

    def test_unknown_mutation_is_an_error(self):
        with pytest.raises(KeyError):
            ResourceStore().invalidate_for('launch_rockets')

    def test_clear_notifies_everyone(self):
        store = ResourceStore()
        calls = []
        store.subscribe('tasks', calls.append)
        store.put('inventory', [])

        store.clear()
        assert store.keys() == []
        assert calls == ['tasks']

    def test_every_mutation_touches_something(self):
        assert all(MUTATION_INVALIDATIONS.values())
        assert set(MUTATION_INVALIDATIONS['buy_potential_product']) >= {'potential-products', 'inventory'}
        assert set(MUTATION_INVALIDATIONS['create_expense']) >= {'expenses', 'bank-accounts'}


class TestClientTransport:

    def test_reads_are_cached_until_invalidated(self):
        hits = []

        def handler(request):
            hits.append((request.method, request.url.path))
            if request.method == 'GET':
                return httpx.Response(200, json=[{'id': 1, 'title': 'A'}])
            return httpx.Response(201, json={'id': 2, 'title': 'B'})

        with KomershClient('http://komersh.test', transport=httpx.MockTransport(handler)) as api:
            api.list_tasks()
            api.list_tasks()
            assert hits == [('GET', '/api/tasks')]

            api.create_task({'title': 'B'})
            api.list_tasks()
            assert hits[-1] == ('GET', '/api/tasks')
            assert len(hits) == 3

    def test_error_body_becomes_exception(self):
        def handler(request):
            return httpx.Response(409, json={'message': 'Insufficient stock: only 2 available', 'field': 'quantitySold'})

        with KomershClient('http://komersh.test', transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(ApiClientError) as exc:
                api.sell_inventory(1, 'amazon', 3, Decimal('20.00'))

        assert exc.value.status == 409
        assert exc.value.field == 'quantitySold'
        assert 'only 2 available' in exc.value.message

    def test_decimals_sent_as_strings(self):
        seen = {}

        def handler(request):
            import json
            seen.update(json.loads(request.content))
            return httpx.Response(201, json={'id': 1})

        with KomershClient('http://komersh.test', transport=httpx.MockTransport(handler)) as api:
            api.buy_potential_product(1, 5, Decimal('10.00'), shippingCost=Decimal('2.50'))

        assert seen == {'quantity': 5, 'unitCost': '10.00', 'shippingCost': '2.50'}

    def test_subscriber_hears_about_sale(self):
        def handler(request):
            return httpx.Response(201, json={'id': 1})

        with KomershClient('http://komersh.test', transport=httpx.MockTransport(handler)) as api:
            heard = []
            api.store.subscribe('dashboard', heard.append)
            api.sell_inventory(1, 'noon', 1, '20.00')

        assert heard == ['dashboard']


@pytest.fixture(scope='function')
def api(app, db_session):
    """A KomershClient whose transport calls straight into the Flask app."""
    flask_client = app.test_client(use_cookies=False)

    def handler(request):
        headers = [(k, v) for k, v in request.headers.items() if k.lower() not in ('host', 'content-length')]
        resp = flask_client.open(
            request.url.raw_path.decode('ascii'),
            method=request.method,
            headers=headers,
            data=request.content,
        )
        return httpx.Response(resp.status_code, headers=list(resp.headers.items()), content=resp.get_data())

    with KomershClient('http://komersh.test', transport=httpx.MockTransport(handler)) as client:
        yield client


class TestClientAgainstApi:

    def test_buy_and_sell_flow(self, api, make_user):
        make_user('owner@komersh.test', role='founder')
        me = api.login('owner@komersh.test', PASSWORD)
        assert me['role'] == 'founder'
        assert api.current_user() is me

        product = api.create_potential_product({'name': 'Lamp', 'costPerUnit': '10.00'})
        lot = api.buy_potential_product(product['id'], 5, Decimal('10.00'))

        before = api.list_inventory()
        assert before[0]['quantityAvailable'] == 5

        order = api.sell_inventory(lot['id'], 'amazon', 3, Decimal('20.00'))
        assert order['profit'] == '30.00'

        # The sale invalidated the cached inventory list
        after = api.list_inventory()
        assert after[0]['quantityAvailable'] == 2

        with pytest.raises(ApiClientError) as exc:
            api.sell_inventory(lot['id'], 'amazon', 3, Decimal('20.00'))
        assert exc.value.status == 409

        assert api.dashboard_stats('USD')['salesCount'] == 1

    def test_logout_clears_cache(self, api, make_user):
        make_user('v@komersh.test', role='viewer')
        api.login('v@komersh.test', PASSWORD)
        api.list_tasks()

        api.logout()
        assert api.store.keys() == []
        with pytest.raises(ApiClientError) as exc:
            api.current_user()
        assert exc.value.status == 401
