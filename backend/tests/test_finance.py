"""
Bank accounts, expenses and dashboard totals.
"""

import pytest


@pytest.fixture(scope='function')
def account(admin_client):
    resp = admin_client.post('/api/bank-accounts', json={
        'name': 'ENBD Operating', 'type': 'bank', 'balance': '50.00', 'currency': 'USD',
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


class TestBankAccounts:

    def test_create_defaults(self, admin_client):
        resp = admin_client.post('/api/bank-accounts', json={'name': 'Cash box', 'type': 'cash'})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body['balance'] == '0.00'
        assert body['currency'] == 'USD'

    def test_create_rejects_unknown_type(self, admin_client):
        resp = admin_client.post('/api/bank-accounts', json={'name': 'X', 'type': 'crypto'})
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'type'

    def test_adjust_add(self, admin_client, account):
        resp = admin_client.post(f"/api/bank-accounts/{account['id']}/adjust", json={
            'amount': '100.00', 'type': 'add', 'description': 'Owner top-up',
        })
        assert resp.status_code == 200
        assert resp.get_json()['balance'] == '150.00'

    def test_adjust_subtract_may_go_negative(self, admin_client, account):
        resp = admin_client.post(f"/api/bank-accounts/{account['id']}/adjust", json={
            'amount': '80.00', 'type': 'subtract',
        })
        assert resp.status_code == 200
        assert resp.get_json()['balance'] == '-30.00'

    @pytest.mark.parametrize('body,field', [
        ({'amount': '0', 'type': 'add'}, 'amount'),
        ({'amount': '-5', 'type': 'add'}, 'amount'),
        ({'amount': 'abc', 'type': 'add'}, 'amount'),
        ({'amount': '5', 'type': 'transfer'}, 'type'),
        ({'type': 'add'}, 'amount'),
    ])
    def test_adjust_validation(self, admin_client, account, body, field):
        resp = admin_client.post(f"/api/bank-accounts/{account['id']}/adjust", json=body)
        assert resp.status_code == 400
        assert resp.get_json()['field'] == field

        balance = admin_client.get('/api/bank-accounts').get_json()[0]['balance']
        assert balance == '50.00'

    def test_adjust_unknown_account_404(self, admin_client):
        resp = admin_client.post('/api/bank-accounts/9999/adjust', json={'amount': '1', 'type': 'add'})
        assert resp.status_code == 404

    def test_adjust_logs_deposit(self, admin_client, account):
        admin_client.post(f"/api/bank-accounts/{account['id']}/adjust", json={'amount': '1.00', 'type': 'add'})
        actions = [e['action'] for e in admin_client.get('/api/activity-log').get_json()]
        assert 'deposit' in actions


class TestExpenses:

    def test_expense_defaults_date_to_today(self, admin_client):
        resp = admin_client.post('/api/expenses', json={'category': 'shipping', 'amount': '12.50'})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body['date'] is not None
        assert body['currency'] == 'USD'

    def test_expense_requires_positive_amount(self, admin_client):
        resp = admin_client.post('/api/expenses', json={'category': 'shipping', 'amount': '0'})
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'amount'

    def test_linked_expense_debits_account(self, admin_client, account):
        resp = admin_client.post('/api/expenses', json={
            'category': 'software', 'amount': '20.00', 'bankAccountId': account['id'],
        })
        assert resp.status_code == 201

        balance = admin_client.get('/api/bank-accounts').get_json()[0]['balance']
        assert balance == '30.00'

    def test_linked_expense_converts_into_account_currency(self, admin_client):
        aed = admin_client.post('/api/bank-accounts', json={
            'name': 'AED account', 'balance': '367.00', 'currency': 'AED',
        }).get_json()

        admin_client.post('/api/expenses', json={
            'category': 'ads', 'amount': '10.00', 'currency': 'USD', 'bankAccountId': aed['id'],
        })

        balance = admin_client.get('/api/bank-accounts').get_json()[0]['balance']
        assert balance == '330.30'

    def test_expense_with_unknown_account_rejected(self, admin_client):
        resp = admin_client.post('/api/expenses', json={
            'category': 'ads', 'amount': '10.00', 'bankAccountId': 9999,
        })
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'bankAccountId'
        assert admin_client.get('/api/expenses').get_json() == []

    def test_editing_expense_does_not_readjust_balance(self, admin_client, account):
        expense = admin_client.post('/api/expenses', json={
            'category': 'software', 'amount': '20.00', 'bankAccountId': account['id'],
        }).get_json()

        resp = admin_client.put(f"/api/expenses/{expense['id']}", json={'amount': '40.00'})
        assert resp.status_code == 200
        assert resp.get_json()['amount'] == '40.00'

        balance = admin_client.get('/api/bank-accounts').get_json()[0]['balance']
        assert balance == '30.00'

    def test_expense_notifies_team(self, admin_client, founder_client):
        admin_client.post('/api/expenses', json={'category': 'rent', 'amount': '1000.00'})
        types = [n['type'] for n in founder_client.get('/api/notifications').get_json()]
        assert 'expense_added' in types

    def test_filter_by_category(self, admin_client):
        admin_client.post('/api/expenses', json={'category': 'rent', 'amount': '1.00'})
        admin_client.post('/api/expenses', json={'category': 'ads', 'amount': '2.00'})
        rows = admin_client.get('/api/expenses?category=ads').get_json()
        assert [r['category'] for r in rows] == ['ads']


class TestDashboard:

    @pytest.fixture(scope='function')
    def trading_history(self, admin_client, product, buy):
        lot = buy(product['id'], 10, unit_cost='10.00')
        resp = admin_client.post(f"/api/inventory/{lot['id']}/sell", json={
            'channel': 'noon',
            'quantitySold': 3,
            'sellingPricePerUnit': '20.00',
            'marketplaceFees': '2.00',
            'shippingCost': '1.00',
        })
        assert resp.status_code == 201
        admin_client.post('/api/expenses', json={'category': 'ads', 'amount': '5.00'})
        admin_client.post('/api/bank-accounts', json={'name': 'Main', 'balance': '100.00'})

    def test_totals_in_usd(self, admin_client, trading_history):
        stats = admin_client.get('/api/dashboard/stats').get_json()

        assert stats['currency'] == 'USD'
        assert stats['totalRevenue'] == pytest.approx(60.0)
        assert stats['totalProfit'] == pytest.approx(27.0)
        assert stats['totalExpenses'] == pytest.approx(5.0)
        assert stats['netProfit'] == pytest.approx(22.0)
        assert stats['monthlyRevenue'] == pytest.approx(60.0)
        assert stats['inventoryValue'] == pytest.approx(70.0)
        assert stats['inventoryCount'] == 7
        assert stats['lowStockCount'] == 0
        assert stats['pendingPayouts'] == pytest.approx(57.0)
        assert stats['totalBankBalance'] == pytest.approx(100.0)
        assert stats['salesCount'] == 1

    def test_totals_converted_to_display_currency(self, admin_client, trading_history):
        stats = admin_client.get('/api/dashboard/stats?currency=AED').get_json()

        assert stats['currency'] == 'AED'
        assert stats['totalRevenue'] == pytest.approx(220.2)
        assert stats['totalBankBalance'] == pytest.approx(367.0)

    def test_unsupported_currency(self, admin_client):
        resp = admin_client.get('/api/dashboard/stats?currency=GBP')
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'currency'

    def test_settings_exposes_rate_table(self, viewer_client):
        body = viewer_client.get('/api/settings').get_json()
        assert body['defaultCurrency'] == 'USD'
        assert body['exchangeRates'] == {'USD': 1.0, 'AED': 3.67, 'EUR': 0.92}
