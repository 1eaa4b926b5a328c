"""
Integration tests for CRM endpoints
"""
import pytest


@pytest.mark.integration
class TestCRMEndpoints:
    """Tests for /api/crm"""

    def test_client_crud(self, client, sample_client_data):
        response = client.post('/api/crm/clients', json=sample_client_data)
        assert response.status_code == 201
        client_id = response.get_json()['client']['id']

        assert client.get(f'/api/crm/clients/{client_id}').get_json()['client']['name'] == sample_client_data['name']

        response = client.put(f'/api/crm/clients/{client_id}', json={'address': '9 Elm St'})
        assert response.get_json()['client']['address'] == '9 Elm St'

        assert client.delete(f'/api/crm/clients/{client_id}').status_code == 200
        assert client.get(f'/api/crm/clients/{client_id}').status_code == 404

    def test_create_invalid_client(self, client):
        response = client.post('/api/crm/clients', json={'name': 'A'})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_list_is_paginated(self, client):
        for i in range(3):
            client.post('/api/crm/deals', json={'title': f'Deal {i}'})
        data = client.get('/api/crm/deals?per_page=2&page=1').get_json()
        assert len(data['deals']) == 2
        assert data['pagination']['total'] == 3
        assert data['pagination']['total_pages'] == 2

    def test_job_filters(self, client, sample_client_data):
        client_id = client.post('/api/crm/clients', json=sample_client_data).get_json()['client']['id']
        client.post('/api/crm/jobs', json={'title': 'Mow', 'client_id': client_id})
        client.post('/api/crm/jobs', json={'title': 'Plow', 'status': 'completed'})

        assert [j['title'] for j in client.get(f'/api/crm/jobs?client_id={client_id}').get_json()['jobs']] == ['Mow']
        assert [j['title'] for j in client.get('/api/crm/jobs?status=completed').get_json()['jobs']] == ['Plow']

    def test_job_with_unknown_client(self, client):
        response = client.post('/api/crm/jobs', json={'title': 'Mow', 'client_id': 'missing'})
        assert response.status_code == 404

    def test_client_delete_cascade(self, client, sample_client_data):
        client_id = client.post('/api/crm/clients', json=sample_client_data).get_json()['client']['id']
        client.post('/api/crm/invoices', json={'invoice_number': 'INV-1', 'client_id': client_id})

        response = client.delete(f'/api/crm/clients/{client_id}')
        assert response.status_code == 400
        assert response.get_json()['related']['invoices'] == 1

        assert client.delete(f'/api/crm/clients/{client_id}?cascade=true').status_code == 200

    def test_client_pins_are_linked(self, client, sample_client_data):
        client_id = client.post('/api/crm/clients', json=sample_client_data).get_json()['client']['id']
        client.post('/api/pins', json={'address': 'Main St', 'client_id': client_id})
        pins = client.get(f'/api/crm/clients/{client_id}').get_json()['pins']
        assert len(pins) == 1

    def test_unknown_record(self, client):
        assert client.get('/api/crm/notes/missing').status_code == 404
        assert client.put('/api/crm/notes/missing', json={'title': 'x'}).status_code == 404
        assert client.delete('/api/crm/employees/missing').status_code == 404

    def test_reports(self, client):
        client.post('/api/crm/deals', json={'title': 'Deal', 'amount': 200.0, 'probability': 25})
        stats = client.get('/api/crm/reports').get_json()['stats']
        assert stats['deals']['weighted_value'] == 50.0
        assert stats['total_clients'] == 0


@pytest.mark.integration
class TestErrorHandling:
    """Tests for JSON error responses and security headers"""

    def test_unknown_route_is_json_404(self, client):
        response = client.get('/api/does-not-exist')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_method_not_allowed(self, client):
        assert client.patch('/api/pins').status_code == 405

    def test_security_headers(self, client):
        response = client.get('/api/health')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert 'maps.googleapis.com' in response.headers['Content-Security-Policy']
