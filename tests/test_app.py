def create(client, players, **settings):
    return client.post("/tournaments", json=dict(name="Cup", players=players, **settings))


def pending_pair(client, tid):
    matches = client.get(f'/tournaments/{tid}').get_json()['matches']
    return next(m for m in matches if m['status'] == 'pending' and m['player1_id'] and m['player2_id'])


def test_index_lists_tournaments(client):
    resp = client.get('/')
    assert resp.status_code == 200
    assert resp.get_json() == {'tournaments': []}


def test_mutations_need_admin(client):
    assert create(client, ["Ann", "Bob", "Cat"]).status_code == 401
    assert client.post('/login', json={'username': 'admin', 'password': 'wrong'}).status_code == 401


def test_logout_drops_admin(admin):
    admin.post('/logout')
    assert create(admin, ["Ann", "Bob", "Cat"]).status_code == 401


def test_create_and_view_tournament(admin):
    resp = create(admin, ["Ann", "Bob", "Cat", "Dan"])
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['phase'] == 'knockout'

    view = admin.get(f"/tournaments/{body['id']}").get_json()
    assert view['tournament']['name'] == "Cup"
    assert len(view['players']) == 4
    assert len(view['matches']) == 3
    assert len(admin.get('/').get_json()['tournaments']) == 1


def test_errors_map_to_status_codes(admin):
    resp = create(admin, ["Ann", "Bob", "Cat", "Dan", "Eve"], format='league', matches_per_player=3)
    assert resp.status_code == 400
    assert 'odd' in resp.get_json()['error']

    assert create(admin, ["Ann"]).status_code == 400
    assert admin.get('/tournaments/999').status_code == 404

    tid = create(admin, ["Ann", "Bob", "Cat", "Dan"]).get_json()['id']
    m = pending_pair(admin, tid)
    resp = admin.post(f"/tournaments/{tid}/matches/{m['id']}/skip")
    assert resp.status_code == 409


def test_record_result_over_http(admin):
    tid = create(admin, ["Ann", "Bob", "Cat", "Dan"]).get_json()['id']
    m = pending_pair(admin, tid)
    url = f"/tournaments/{tid}/matches/{m['id']}/result"
    body = {'winner_id': m['player1_id'], 'player1_sets': 3, 'player2_sets': 1}
    resp = admin.post(url, json=body)
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'completed'
    assert admin.post(url, json=body).status_code == 409
    assert admin.post(url, json={'winner_id': m['player1_id'], 'player1_sets': 'x', 'player2_sets': 1}).status_code == 400


def test_live_scoring_to_confirmed_result(admin):
    tid = create(admin, ["Ann", "Bob", "Cat", "Dan"], game_mode=201, knockout_sets_to_win=1).get_json()['id']
    m = pending_pair(admin, tid)
    base = f"/tournaments/{tid}/matches/{m['id']}/scoring"

    state = admin.get(base).get_json()
    assert state['players'][0]['score'] == 201
    assert state['double_out'] is True

    assert admin.post(base + '/confirm').status_code == 409

    for _ in range(3):
        resp = admin.post(base + '/throw', json={'base': 20, 'multiplier': 3})
    body = resp.get_json()
    assert body['outcome'] == 'turn_over'
    assert body['maximum'] is True
    assert body['state']['players'][0]['score'] == 21

    for _ in range(3):
        admin.post(base + '/throw', json={'base': 0, 'multiplier': 1})
    admin.post(base + '/throw', json={'base': 1, 'multiplier': 1})
    assert admin.get(base).get_json()['checkout'] == ['D10']
    body = admin.post(base + '/throw', json={'base': 10, 'multiplier': 2}).get_json()
    assert body['outcome'] == 'match_won'

    undone = admin.post(base + '/undo').get_json()
    assert undone['phase'] == 'in_progress'
    admin.post(base + '/throw', json={'base': 10, 'multiplier': 2})

    resp = admin.post(base + '/confirm')
    assert resp.status_code == 200
    assert resp.get_json()['winner_id'] == m['player1_id']
    assert admin.get(base).status_code == 409


def test_bad_throw_is_rejected(admin):
    tid = create(admin, ["Ann", "Bob", "Cat", "Dan"]).get_json()['id']
    m = pending_pair(admin, tid)
    base = f"/tournaments/{tid}/matches/{m['id']}/scoring"
    assert admin.post(base + '/throw', json={'base': 25, 'multiplier': 2}).status_code == 400
    assert admin.post(base + '/next').get_json()['active'] == 1
    admin.post(base + '/throw', json={'base': 5, 'multiplier': 1})
    assert admin.post(base + '/next').get_json()['active'] == 2


def test_simulate_and_delete(admin):
    tid = create(admin, ["Ann", "Bob", "Cat", "Dan"]).get_json()['id']
    resp = admin.post(f'/tournaments/{tid}/simulate', json={'seed': 3})
    assert resp.get_json() == {'simulated': 3}
    assert admin.get(f'/tournaments/{tid}').get_json()['tournament']['phase'] == 'completed'

    assert admin.delete(f'/tournaments/{tid}').status_code == 200
    assert admin.get(f'/tournaments/{tid}').status_code == 404


def test_checkout_lookup(client):
    body = client.get('/checkout/170').get_json()
    assert body['darts'] == ['T20', 'T20', 'Bull']
    assert client.get('/checkout/169').get_json()['darts'] is None
    single = client.get('/checkout/180?double=0').get_json()
    assert single['darts'] == ['T20', 'T20', 'T20']
    assert client.get('/checkout/120').get_json()['display'] == ['T20', '20', 'D20']


def test_league_options(client):
    body = client.get('/league/options/6').get_json()
    assert body['options'] == [1, 2, 3, 4, 5]
    assert body['default'] == 3
    check = client.get('/league/options/5?k=3').get_json()
    assert check['valid'] is False
    assert check['reason']


def test_skipped_match_drops_its_scoring_session(admin):
    names = ["Ann", "Bob", "Cat", "Dan", "Eve", "Fay", "Gus", "Hal", "Ivy"]
    tid = create(admin, names).get_json()['id']
    m = pending_pair(admin, tid)
    base = f"/tournaments/{tid}/matches/{m['id']}/scoring"
    assert admin.get(base).status_code == 200

    assert admin.post(f"/tournaments/{tid}/matches/{m['id']}/skip").status_code == 200
    assert admin.post(base + '/confirm').status_code == 409
    assert admin.get(base).status_code == 409
