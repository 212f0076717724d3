import json
from datetime import timedelta

import pytest
from django.conf import settings
from django.test import Client
from django.utils import timezone

from gangs.models import Gang, Membership, Mission, MissionAttempt, Player, Territory, War
from gangs.services import roster


def patch_json(client, url, body):
    return client.patch(url, data=json.dumps(body), content_type='application/json')


def post_json(client, url, body=None):
    return client.post(url, data=json.dumps(body or {}), content_type='application/json')


@pytest.mark.django_db
class TestGangAPI:
    def login(self, client, make_user, username='tester', cash=50000):
        user = make_user(username, cash=cash)
        assert client.login(username=username, password='secret')
        return user

    def found(self, client, name='Night Owls', tag='OWL'):
        resp = post_json(client, '/api/gangs/', {'name': name, 'tag': tag, 'description': 'Hoo'})
        assert resp.status_code == 201, resp.json()
        return resp.json()['data']

    def test_requires_auth(self, client):
        resp = client.get('/api/gangs/')
        assert resp.status_code == 302

    def test_found_and_details(self, client, make_user):
        user = self.login(client, make_user)
        gang = self.found(client)
        assert gang['tag'] == 'OWL'
        assert gang['member_count'] == 1
        assert gang['members'][0]['role'] == 'leader'
        assert gang['members'][0]['username'] == user.username
        assert Player.objects.get(user=user).cash == 40000

        resp = client.get(f"/api/gangs/{gang['id']}/")
        assert resp.status_code == 200
        data = resp.json()['data']
        assert data['territories'] == []
        assert data['active_wars'] == []
        assert data['active_missions'] == []

        me = client.get('/api/me/').json()['data']
        assert me['gang_id'] == gang['id']
        assert me['role'] == 'leader'

    def test_found_without_fee(self, client, make_user):
        self.login(client, make_user, cash=500)
        resp = post_json(client, '/api/gangs/', {'name': 'Broke Boys', 'tag': 'BRK'})
        assert resp.status_code == 400
        body = resp.json()
        assert body['ok'] is False
        assert body['code'] == 'insufficient_funds'
        assert not Gang.objects.exists()

    def test_found_missing_fields(self, client, make_user):
        self.login(client, make_user)
        resp = post_json(client, '/api/gangs/', {'name': 'No Tag'})
        assert resp.status_code == 400
        assert resp.json()['code'] == 'missing_field'

    def test_deposit_and_withdraw(self, client, make_user):
        self.login(client, make_user)
        gang = self.found(client)
        resp = post_json(client, f"/api/gangs/{gang['id']}/deposit/", {'amount': 5000})
        assert resp.status_code == 200
        data = resp.json()['data']
        assert data['gang_balance'] == 5000
        assert data['contribution'] == 5000

        resp = post_json(client, f"/api/gangs/{gang['id']}/withdraw/", {'amount': '2000'})
        assert resp.status_code == 200
        assert resp.json()['data']['gang_balance'] == 3000

        resp = post_json(client, f"/api/gangs/{gang['id']}/withdraw/", {'amount': 99999})
        assert resp.status_code == 400
        assert resp.json()['code'] == 'insufficient_funds'

        resp = post_json(client, f"/api/gangs/{gang['id']}/deposit/", {'amount': 'lots'})
        assert resp.status_code == 400
        assert resp.json()['code'] == 'invalid_amount'

    def test_fractional_amounts_are_rejected_not_truncated(self, client, make_user):
        user = self.login(client, make_user)
        gang = self.found(client)
        for bad in (1.9, '1.9', 2.0, '1e3'):
            resp = post_json(client, f"/api/gangs/{gang['id']}/deposit/", {'amount': bad})
            assert resp.status_code == 400
            assert resp.json()['code'] == 'invalid_amount'
        assert Gang.objects.get(pk=gang['id']).bank_balance == 0
        assert Player.objects.get(user=user).cash == 40000
        assert Membership.objects.get(user=user).contribution == 0

        resp = client.post(f"/api/gangs/{gang['id']}/deposit/", {'amount': '250'})
        assert resp.status_code == 200
        assert resp.json()['data']['gang_balance'] == 250

    def test_update_gang_profile(self, client, make_user):
        self.login(client, make_user, username='boss')
        gang = self.found(client)
        url = f"/api/gangs/{gang['id']}/"

        resp = patch_json(client, url, {
            'description': 'Night shift only', 'logo': 'owl.png',
            'bank_balance': 10 ** 9, 'level': 99, 'name': 'Renamed',
        })
        assert resp.status_code == 200
        data = resp.json()['data']
        assert data['description'] == 'Night shift only'
        assert data['logo'] == 'owl.png'
        assert data['bank_balance'] == 0
        assert data['level'] == 1
        assert data['name'] == 'Night Owls'

        resp = post_json(client, url, {'logo': 'x' * 201})
        assert resp.status_code == 400
        assert resp.json()['code'] == 'invalid_logo'
        client.logout()

        recruit = self.login(client, make_user, username='recruit')
        Membership.objects.create(gang_id=gang['id'], user=recruit, role=Membership.Role.UNDERBOSS)
        resp = patch_json(client, url, {'description': 'Taken over'})
        assert resp.status_code == 403
        assert resp.json()['code'] == 'forbidden'
        assert Gang.objects.get(pk=gang['id']).description == 'Night shift only'

    def test_war_listings(self, client, make_user):
        defender = roster.found_gang(make_user('defender'), 'Blue Fist', 'BLU')
        docks = Territory.objects.create(name='Dockside', controlled_by=defender)
        depot = Territory.objects.create(name='Rail Depot', controlled_by=defender)

        self.login(client, make_user)
        gang = self.found(client)
        first = post_json(client, f"/api/gangs/{gang['id']}/attack/{docks.id}/").json()['data']['war']
        second = post_json(client, f"/api/gangs/{gang['id']}/attack/{depot.id}/").json()['data']['war']
        post_json(client, f"/api/wars/{first['id']}/end/", {'winner_gang_id': str(defender.id)})

        resp = client.get('/api/wars/')
        assert resp.status_code == 200
        assert {w['id'] for w in resp.json()['data']['wars']} == {first['id'], second['id']}

        resp = client.get('/api/wars/active/')
        assert resp.status_code == 200
        active = resp.json()['data']['wars']
        assert [w['id'] for w in active] == [second['id']]
        assert active[0]['territory']['name'] == 'Rail Depot'

    def test_cors_origins_pass_csrf_origin_check(self, make_user):
        make_user('tester')
        csrf_client = Client(enforce_csrf_checks=True)
        assert csrf_client.login(username='tester', password='secret')
        token = 'a1' * 16
        csrf_client.cookies[settings.CSRF_COOKIE_NAME] = token
        url = '/api/gangs/'
        body = json.dumps({'name': 'Night Owls', 'tag': 'OWL'})

        resp = csrf_client.post(
            url, data=body, content_type='application/json',
            HTTP_ORIGIN='http://evil.example', HTTP_X_CSRFTOKEN=token,
        )
        assert resp.status_code == 403
        assert not Gang.objects.exists()

        assert set(settings.CORS_ALLOWED_ORIGINS) <= set(settings.CSRF_TRUSTED_ORIGINS)
        resp = csrf_client.post(
            url, data=body, content_type='application/json',
            HTTP_ORIGIN=settings.CORS_ALLOWED_ORIGINS[0], HTTP_X_CSRFTOKEN=token,
        )
        assert resp.status_code == 201, resp.content
        assert Gang.objects.filter(tag='OWL').exists()

    def test_join_conflict_and_soldier_forbidden(self, client, make_user):
        self.login(client, make_user, username='boss')
        gang = self.found(client)
        client.logout()

        self.login(client, make_user, username='recruit')
        resp = post_json(client, f"/api/gangs/{gang['id']}/join/")
        assert resp.status_code == 200
        assert resp.json()['data']['member_count'] == 2

        resp = post_json(client, f"/api/gangs/{gang['id']}/join/")
        assert resp.status_code == 409
        assert resp.json()['code'] == 'already_in_gang'

        resp = post_json(client, f"/api/gangs/{gang['id']}/withdraw/", {'amount': 1})
        assert resp.status_code == 403
        assert resp.json()['code'] == 'forbidden'

    def test_role_management(self, client, make_user):
        self.login(client, make_user, username='boss')
        gang = self.found(client)
        recruit = make_user('recruit')
        Membership.objects.create(gang_id=gang['id'], user=recruit)

        resp = post_json(client, f"/api/gangs/{gang['id']}/members/{recruit.id}/promote/")
        assert resp.status_code == 200
        assert Membership.objects.get(user=recruit).role == 'capo'

        resp = post_json(client, f"/api/gangs/{gang['id']}/members/{recruit.id}/role/", {'role': 'underboss'})
        assert resp.status_code == 200
        assert Membership.objects.get(user=recruit).role == 'underboss'

        resp = post_json(client, f"/api/gangs/{gang['id']}/members/{recruit.id}/lead/")
        assert resp.status_code == 200
        assert Membership.objects.get(user=recruit).role == 'leader'

        resp = post_json(client, f"/api/gangs/{gang['id']}/leave/")
        assert resp.status_code == 200
        assert resp.json()['data'] == {'left': True, 'disbanded': False}

    def test_unknown_gang(self, client, make_user):
        self.login(client, make_user)
        resp = client.get('/api/gangs/00000000-0000-0000-0000-000000000000/')
        assert resp.status_code == 404
        assert resp.json()['code'] == 'not_found'

    def test_attack_war_flow(self, client, make_user):
        defender_boss = make_user('defender')
        defender = roster.found_gang(defender_boss, 'Blue Fist', 'BLU')
        turf = Territory.objects.create(name='Dockside', income_per_day=400, controlled_by=defender)
        free = Territory.objects.create(name='Industrial Zone', income_per_day=350)

        self.login(client, make_user)
        gang = self.found(client)

        resp = post_json(client, f"/api/gangs/{gang['id']}/attack/{free.id}/")
        assert resp.status_code == 200
        assert resp.json()['data']['claimed'] is True

        resp = post_json(client, f"/api/gangs/{gang['id']}/attack/{turf.id}/")
        assert resp.status_code == 201
        war = resp.json()['data']['war']
        assert war['attack_strength'] == 0

        resp = post_json(client, f"/api/gangs/{gang['id']}/attack/{turf.id}/")
        assert resp.status_code == 409
        assert resp.json()['code'] == 'already_at_war'

        resp = post_json(client, f"/api/wars/{war['id']}/contribute/", {'amount': 600})
        assert resp.status_code == 200
        assert resp.json()['data']['war']['attack_strength'] == 600

        resp = post_json(client, f"/api/wars/{war['id']}/end/", {'winner_gang_id': gang['id']})
        assert resp.status_code == 200
        assert resp.json()['data']['status'] == 'completed'
        turf.refresh_from_db()
        assert str(turf.controlled_by_id) == gang['id']
        assert War.objects.get().winner_id is not None

        territories = client.get('/api/territories/').json()['data']['territories']
        assert {t['name'] for t in territories if t['controlled_by']} == {'Dockside', 'Industrial Zone'}

    def test_mission_flow(self, client, make_user):
        self.login(client, make_user)
        gang = self.found(client)
        mission = Mission.objects.create(name='Protection Racket', duration_minutes=10, cash_reward=2000)

        listing = client.get(f"/api/gangs/{gang['id']}/missions/").json()['data']['missions']
        assert listing[0]['can_attempt'] is True

        resp = post_json(client, f"/api/gangs/{gang['id']}/missions/{mission.id}/start/")
        assert resp.status_code == 201
        attempt = resp.json()['data']

        resp = post_json(client, f"/api/missions/attempts/{attempt['id']}/collect/")
        assert resp.status_code == 409
        assert resp.json()['code'] == 'not_ready'

        # Fast-forward the attempt past its completion time
        past = timezone.now() - timedelta(minutes=1)
        MissionAttempt.objects.filter(pk=attempt['id']).update(completed_at=past)
        status = client.get(f"/api/missions/attempts/{attempt['id']}/").json()['data']
        assert status['status'] == 'completed'

        resp = post_json(client, f"/api/missions/attempts/{attempt['id']}/collect/")
        assert resp.status_code == 200
        assert resp.json()['data']['gang_balance'] == 2000

        resp = post_json(client, f"/api/missions/attempts/{attempt['id']}/collect/")
        assert resp.status_code == 409
        assert Gang.objects.get(pk=gang['id']).bank_balance == 2000
