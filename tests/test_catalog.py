"""
Catalog tests
Offered services, served cities and homepage sections
"""
from roadside.commands import execute, run
from roadside.errors import ConflictError, PermissionDenied, ValidationError
from roadside.models import Service
from roadside.services import catalog


class TestServices:
    """Services shown on the request form"""

    def test_admin_creates_service(self, client, admin_headers):
        response = client.post('/api/admin/services', headers=admin_headers, json={
            'name': 'Fuel Delivery',
            'slug': 'fuel_delivery',
            'description': 'Petrol or diesel brought to you',
            'icon': 'fuel',
        })

        assert response.status_code == 201
        service = response.get_json()['service']
        assert service['slug'] == 'fuel_delivery'
        assert service['is_active'] is True
        assert service['display_order'] == 1

    def test_public_list_is_active_and_ordered(self, client, admin):
        run(catalog.save_service, admin, {'name': 'Towing', 'slug': 'towing', 'display_order': 2})
        run(catalog.save_service, admin, {'name': 'Jump Start', 'slug': 'jump_start', 'display_order': 1})
        run(catalog.save_service, admin, {'name': 'Lockout', 'slug': 'lockout', 'is_active': False})

        response = client.get('/api/services')

        assert response.status_code == 200
        assert [s['slug'] for s in response.get_json()['services']] == ['jump_start', 'towing']

    def test_admin_list_includes_inactive(self, client, admin, admin_headers):
        run(catalog.save_service, admin, {'name': 'Lockout', 'slug': 'lockout', 'is_active': False})

        response = client.get('/api/admin/services', headers=admin_headers)

        assert [s['slug'] for s in response.get_json()['services']] == ['lockout']

    def test_slug_must_be_a_service_type(self, admin):
        result = execute(catalog.save_service, admin, {'name': 'Car Wash', 'slug': 'car_wash'})
        assert isinstance(result.error, ValidationError)

    def test_duplicate_slug(self, admin):
        run(catalog.save_service, admin, {'name': 'Towing', 'slug': 'towing'})
        result = execute(catalog.save_service, admin, {'name': 'Tow Truck', 'slug': 'towing'})
        assert isinstance(result.error, ConflictError)

    def test_customer_cannot_manage(self, client, customer_headers):
        response = client.post('/api/admin/services', headers=customer_headers,
                               json={'name': 'Towing', 'slug': 'towing'})
        assert response.status_code == 403

    def test_deactivated_service_cannot_be_requested(self, client, admin, admin_headers, customer_headers):
        service = run(catalog.save_service, admin, {'name': 'Towing', 'slug': 'towing'})

        response = client.put(f'/api/admin/services/{service.id}', headers=admin_headers,
                              json={'is_active': False})
        assert response.status_code == 200
        assert response.get_json()['service']['name'] == 'Towing'

        created = client.post('/api/requests', headers=customer_headers, json={
            'service_type': 'towing',
            'location': 'Ring Road Central, Accra',
        })
        assert created.status_code == 400
        assert 'Towing' in created.get_json()['error']

    def test_active_service_can_be_requested(self, client, admin, customer_headers):
        run(catalog.save_service, admin, {'name': 'Towing', 'slug': 'towing'})

        created = client.post('/api/requests', headers=customer_headers, json={
            'service_type': 'towing',
            'location': 'Ring Road Central, Accra',
        })

        assert created.status_code == 201

    def test_service_in_use_is_not_deleted(self, admin, make_request):
        service = run(catalog.save_service, admin, {'name': 'Towing', 'slug': 'towing'})
        make_request(service_type='towing')

        result = execute(catalog.delete_service, admin, service.id)

        assert isinstance(result.error, ConflictError)
        assert Service.query.count() == 1

    def test_unused_service_is_deleted(self, client, admin, admin_headers):
        service = run(catalog.save_service, admin, {'name': 'Lockout', 'slug': 'lockout'})

        response = client.delete(f'/api/admin/services/{service.id}', headers=admin_headers)

        assert response.status_code == 200
        assert Service.query.count() == 0


class TestCities:

    def test_create_list_and_hide(self, client, admin, admin_headers):
        accra = client.post('/api/admin/cities', headers=admin_headers, json={'name': 'Accra'})
        client.post('/api/admin/cities', headers=admin_headers, json={'name': 'Kumasi'})
        assert accra.status_code == 201

        client.put(f"/api/admin/cities/{accra.get_json()['city']['id']}", headers=admin_headers,
                   json={'is_active': False})

        public = [c['name'] for c in client.get('/api/cities').get_json()['cities']]
        everything = [c['name'] for c in
                      client.get('/api/admin/cities', headers=admin_headers).get_json()['cities']]
        assert public == ['Kumasi']
        assert everything == ['Accra', 'Kumasi']

    def test_blank_name(self, admin):
        result = execute(catalog.save_city, admin, {'name': '   '})
        assert isinstance(result.error, ValidationError)

    def test_display_order_bounds(self, admin):
        result = execute(catalog.save_city, admin, {'name': 'Tema', 'display_order': 5000})
        assert isinstance(result.error, ValidationError)

    def test_delete_city(self, client, admin, admin_headers):
        city = run(catalog.save_city, admin, {'name': 'Tamale'})

        response = client.delete(f'/api/admin/cities/{city.id}', headers=admin_headers)

        assert response.status_code == 200
        assert client.get('/api/cities').get_json()['cities'] == []

    def test_provider_cannot_add_city(self, provider):
        result = execute(catalog.save_city, provider, {'name': 'Takoradi'})
        assert isinstance(result.error, PermissionDenied)


class TestHomepageSections:

    def test_sections_in_display_order(self, client, admin, admin_headers):
        run(catalog.save_homepage_section, admin, {'name': 'testimonials', 'label': 'What customers say',
                                                   'display_order': 2})
        run(catalog.save_homepage_section, admin, {'name': 'services', 'label': 'Our services',
                                                   'display_order': 1})

        sections = client.get('/api/homepage-sections').get_json()['sections']

        assert [s['name'] for s in sections] == ['services', 'testimonials']

    def test_relabel_keeps_name(self, client, admin, admin_headers):
        section = run(catalog.save_homepage_section, admin, {'name': 'hero', 'label': 'Welcome'})

        response = client.put(f'/api/admin/homepage-sections/{section.id}', headers=admin_headers,
                              json={'label': 'Stranded? We can help'})

        assert response.status_code == 200
        data = response.get_json()['section']
        assert data['name'] == 'hero'
        assert data['label'] == 'Stranded? We can help'

    def test_name_must_be_a_key(self, admin):
        result = execute(catalog.save_homepage_section, admin, {'name': 'Our Services!', 'label': 'x'})
        assert isinstance(result.error, ValidationError)
