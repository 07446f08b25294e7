from bson.objectid import ObjectId

from blogsite.models import Blog


def test_create_blog(client, alice, make_blog):
    headers, user = alice
    blog = make_blog(headers, title='Hello World', content='<p>Body text</p>', tags=['Python', 'flask'])
    assert blog['slug'] == 'hello-world'
    assert blog['author']['id'] == user['id']
    assert blog['tags'] == ['python', 'flask']
    assert blog['status'] == 'draft'
    assert blog['likes'] == [] and blog['comments'] == []
    assert blog['summary'].endswith('...')


def test_create_blog_requires_auth(client):
    rv = client.post('/api/blogs', json={'title': 'x', 'content': 'y'})
    assert rv.status_code == 401


def test_create_blog_validation(client, alice):
    headers, _ = alice
    rv = client.post('/api/blogs', json={'title': '', 'content': 'y'}, headers=headers)
    assert rv.status_code == 400
    rv = client.post('/api/blogs', json={'title': 'x' * 101, 'content': 'y'}, headers=headers)
    assert rv.status_code == 400
    rv = client.post('/api/blogs', json={'title': 'x', 'content': 'y', 'status': 'secret'}, headers=headers)
    assert rv.status_code == 400


def test_same_title_gets_distinct_slug(client, alice, make_blog):
    headers, _ = alice
    first = make_blog(headers, title='Same Title')
    second = make_blog(headers, title='Same Title')
    assert first['slug'] == 'same-title'
    assert second['slug'] == 'same-title-1'


def test_list_and_filter_by_tag(client, alice, make_blog):
    headers, _ = alice
    make_blog(headers, title='One', tags=['python'])
    make_blog(headers, title='Two', tags=['go'])

    rv = client.get('/api/blogs')
    assert rv.status_code == 200
    assert {b['title'] for b in rv.get_json()} == {'One', 'Two'}

    rv = client.get('/api/blogs?tag=python')
    assert [b['title'] for b in rv.get_json()] == ['One']


def test_my_blogs(client, alice, bob, make_blog):
    alice_headers, _ = alice
    bob_headers, _ = bob
    make_blog(alice_headers, title='Mine')
    make_blog(bob_headers, title='Theirs')

    rv = client.get('/api/blogs/my-blogs', headers=alice_headers)
    assert [b['title'] for b in rv.get_json()] == ['Mine']


def test_get_by_id_and_slug_counts_views(client, alice, make_blog):
    headers, _ = alice
    blog = make_blog(headers, title='Viewed')

    rv = client.get(f"/api/blogs/{blog['id']}")
    assert rv.status_code == 200
    assert rv.get_json()['viewCount'] == 1

    rv = client.get('/api/blogs/viewed')
    assert rv.status_code == 200
    assert rv.get_json()['viewCount'] == 2


def test_get_missing_blog(client):
    assert client.get(f'/api/blogs/{ObjectId()}').status_code == 404
    rv = client.get('/api/blogs/no-such-slug')
    assert rv.status_code == 404
    assert rv.get_json()['message'] == 'Blog not found'


def test_popular(client, alice, make_blog):
    headers, _ = alice
    quiet = make_blog(headers, title='Quiet', status='published')
    busy = make_blog(headers, title='Busy', status='published')
    make_blog(headers, title='Draft')
    client.get(f"/api/blogs/{busy['id']}")
    client.get(f"/api/blogs/{busy['id']}")

    rv = client.get('/api/blogs/popular?limit=5')
    assert [b['title'] for b in rv.get_json()] == ['Busy', 'Quiet']
    assert quiet['id'] in [b['id'] for b in rv.get_json()]

    assert client.get('/api/blogs/popular?limit=abc').status_code == 400


def test_update_blog(client, alice, make_blog):
    headers, _ = alice
    blog = make_blog(headers, title='Original', content='First')

    rv = client.put(f"/api/blogs/{blog['id']}", headers=headers, json={'content': 'Second', 'status': 'published'})
    assert rv.status_code == 200
    updated = rv.get_json()
    assert updated['content'] == 'Second'
    assert updated['status'] == 'published'
    assert updated['title'] == 'Original'
    assert updated['slug'] == 'original'


def test_title_change_regenerates_slug(client, alice, make_blog):
    headers, _ = alice
    blog = make_blog(headers, title='Original')

    rv = client.put(f"/api/blogs/{blog['id']}", headers=headers, json={'title': 'Renamed Post'})
    slug = rv.get_json()['slug']
    assert slug.startswith('renamed-post-')
    assert len(slug) == len('renamed-post-') + 4


def test_update_by_non_owner_is_forbidden(client, alice, bob, make_blog):
    alice_headers, _ = alice
    bob_headers, _ = bob
    blog = make_blog(alice_headers, title='Private', content='Untouched')

    rv = client.put(f"/api/blogs/{blog['id']}", headers=bob_headers, json={'content': 'Hacked'})
    assert rv.status_code == 403
    assert rv.get_json()['message'] == 'Not authorized'
    assert client.get(f"/api/blogs/{blog['id']}").get_json()['content'] == 'Untouched'


def test_delete_blog(client, alice, bob, make_blog):
    alice_headers, _ = alice
    bob_headers, _ = bob
    blog = make_blog(alice_headers)

    assert client.delete(f"/api/blogs/{blog['id']}", headers=bob_headers).status_code == 403

    rv = client.delete(f"/api/blogs/{blog['id']}", headers=alice_headers)
    assert rv.status_code == 200
    assert rv.get_json() == {'message': 'Blog deleted'}
    assert client.get(f"/api/blogs/{blog['id']}").status_code == 404
    assert client.delete(f"/api/blogs/{blog['id']}", headers=alice_headers).status_code == 404


def test_malformed_id_is_not_found(client, alice):
    headers, _ = alice
    assert client.put('/api/blogs/not-an-id', headers=headers, json={'content': 'x'}).status_code == 404
    assert client.post('/api/blogs/not-an-id/like', headers=headers).status_code == 404


def test_like_toggles(client, alice, bob, make_blog):
    alice_headers, _ = alice
    bob_headers, bob_user = bob
    blog = make_blog(alice_headers)
    url = f"/api/blogs/{blog['id']}/like"

    liked = client.post(url, headers=bob_headers).get_json()
    assert liked['likes'] == [bob_user['id']]
    assert liked['likeCount'] == 1

    unliked = client.post(url, headers=bob_headers).get_json()
    assert unliked['likes'] == []

    client.post(url, headers=alice_headers)
    client.post(url, headers=bob_headers)
    assert client.get(f"/api/blogs/{blog['id']}").get_json()['likeCount'] == 2


def test_comments(client, alice, bob, make_blog):
    alice_headers, _ = alice
    bob_headers, bob_user = bob
    blog = make_blog(alice_headers)
    url = f"/api/blogs/{blog['id']}/comments"

    rv = client.post(url, headers=bob_headers, json={'text': '  Nice post  '})
    assert rv.status_code == 200
    comments = rv.get_json()['comments']
    assert len(comments) == 1
    assert comments[0]['text'] == 'Nice post'
    assert comments[0]['user']['username'] == bob_user['username']


def test_comment_validation(client, alice, make_blog):
    headers, _ = alice
    blog = make_blog(headers)
    url = f"/api/blogs/{blog['id']}/comments"

    rv = client.post(url, headers=headers, json={'text': '   '})
    assert rv.status_code == 400
    assert 'Comment text is required' in rv.get_json()['message']

    rv = client.post(url, headers=headers, json={'text': 'x' * 501})
    assert rv.status_code == 400
    assert 'Comment cannot exceed 500 characters' in rv.get_json()['message']


def test_delete_comment_permissions(client, register, make_blog):
    owner = {'Authorization': f"Bearer {register('owner')[0]}"}
    writer = {'Authorization': f"Bearer {register('writer')[0]}"}
    stranger = {'Authorization': f"Bearer {register('stranger')[0]}"}
    blog = make_blog(owner)
    url = f"/api/blogs/{blog['id']}/comments"

    first = client.post(url, headers=writer, json={'text': 'first'}).get_json()['comments'][0]
    second = client.post(url, headers=writer, json={'text': 'second'}).get_json()['comments'][1]

    rv = client.delete(f"{url}/{first['id']}", headers=stranger)
    assert rv.status_code == 403
    assert rv.get_json()['message'] == 'Not authorized to delete this comment'

    rv = client.delete(f"{url}/{first['id']}", headers=writer)
    assert rv.status_code == 200
    assert [c['text'] for c in rv.get_json()['comments']] == ['second']

    rv = client.delete(f"{url}/{second['id']}", headers=owner)
    assert rv.status_code == 200
    assert rv.get_json()['comments'] == []

    rv = client.delete(f"{url}/{second['id']}", headers=owner)
    assert rv.status_code == 404
    assert rv.get_json()['message'] == 'Comment not found'


def test_like_post_stored_without_version(client, store, alice):
    headers, user = alice
    blog = Blog(title='Old Post', content='body', author=ObjectId())
    blog.slug = 'old-post'
    doc = blog.to_dict()
    del doc['version']
    store.db.blogs.insert_one(doc)

    rv = client.post(f'/api/blogs/{blog.id}/like', headers=headers)
    assert rv.status_code == 200
    assert rv.get_json()['likes'] == [user['id']]
