import pytest
from django.urls import reverse
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from clinic.models import AuditEvent, Patient, User
from clinic.throttles import LoginRateThrottle

pytestmark = pytest.mark.django_db

# matches the password conftest.make_user sets
PASSWORD = 'Str0ng-Passw0rd!'


def login(client, email, password=PASSWORD, **extra):
    return client.post(reverse('login_view'), {'email': email, 'password': password, **extra}, format='json')


def test_no_role_bypass_in_login(user_factory):
    u = user_factory('u1@example.com', User.ROLE_PATIENT)
    r = login(APIClient(), 'u1@example.com', role='admin')
    assert r.status_code == 200
    assert r.data['role'] == User.ROLE_PATIENT
    u.refresh_from_db()
    assert u.role == User.ROLE_PATIENT


def test_login_returns_jwt_and_legacy_token(user_factory):
    user_factory('u_jwt@example.com', User.ROLE_DOCTOR)
    r = login(APIClient(), 'U_JWT@example.com')
    assert r.status_code == 200
    assert r.data['token']
    assert r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['user']['email'] == 'u_jwt@example.com'


def test_bad_password_is_rejected_and_audited(user_factory):
    user_factory('u2@example.com', User.ROLE_PATIENT)
    r = login(APIClient(), 'u2@example.com', password='wrong-password')
    assert r.status_code == 400
    assert r.data['ok'] is False
    event = AuditEvent.objects.get(action='login')
    assert event.detail['result'] == 'fail'
    assert event.user is None


def test_successful_login_is_audited(user_factory):
    u = user_factory('u3@example.com', User.ROLE_STAFF)
    login(APIClient(), 'u3@example.com')
    event = AuditEvent.objects.get(action='login')
    assert event.user == u
    assert event.detail['result'] == 'ok'


def test_register_creates_patient_with_profile():
    r = APIClient().post(reverse('register_view'), {
        'email': 'new@example.com', 'password': PASSWORD, 'firstName': 'Nora', 'lastName': 'Quinn',
    }, format='json')
    assert r.status_code == 201, r.data
    user = User.objects.get(email='new@example.com')
    assert user.role == User.ROLE_PATIENT
    assert Patient.objects.get(user=user).last_name == 'Quinn'


def test_register_refuses_elevated_roles():
    r = APIClient().post(reverse('register_view'), {
        'email': 'sneaky@example.com', 'password': PASSWORD, 'role': 'admin',
    }, format='json')
    assert r.status_code == 400
    assert not User.objects.filter(email='sneaky@example.com').exists()


def test_register_rejects_duplicate_email_and_weak_password(user_factory):
    user_factory('taken@example.com', User.ROLE_PATIENT)
    client = APIClient()
    dup = client.post(reverse('register_view'), {'email': 'Taken@example.com', 'password': PASSWORD}, format='json')
    assert dup.status_code == 400
    weak = client.post(reverse('register_view'), {'email': 'weak@example.com', 'password': '123'}, format='json')
    assert weak.status_code == 400
    assert 'password' in weak.data['error']['message']


def test_bearer_token_and_jwt_access_both_authenticate(user_factory):
    user_factory('bearer@example.com', User.ROLE_PATIENT)
    data = login(APIClient(), 'bearer@example.com').data

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}")
    assert client.get('/api/appointments').status_code == 200

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwt_access']}")
    assert client.get('/api/appointments').status_code == 200

    client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-key')
    assert client.get('/api/appointments').status_code == 401


def test_jwt_refresh_and_logout_blacklists(user_factory):
    u = user_factory('jwt@example.com', User.ROLE_PATIENT)
    data = login(APIClient(), 'jwt@example.com').data
    client = APIClient()

    r = client.post(reverse('jwt_refresh_view'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwt_access']}")
    r = client.post(reverse('jwt_logout_view'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    assert not Token.objects.filter(user=u).exists()

    client.credentials()
    r = client.post(reverse('jwt_refresh_view'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_logout_with_garbage_refresh(user_factory):
    user_factory('garbage@example.com', User.ROLE_PATIENT)
    data = login(APIClient(), 'garbage@example.com').data
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {data['token']}")
    r = client.post(reverse('jwt_logout_view'), {'refresh': 'garbage'}, format='json')
    assert r.status_code == 400


def test_login_is_rate_limited(user_factory, monkeypatch):
    monkeypatch.setattr(LoginRateThrottle, 'rate', '2/min')
    user_factory('rl@example.com', User.ROLE_PATIENT)
    client = APIClient()
    codes = [login(client, 'rl@example.com').status_code for _ in range(3)]
    assert codes == [200, 200, 429]
