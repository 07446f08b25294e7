# blogsite/store.py
import logging
import re
import time

from bson.objectid import ObjectId
from flask import current_app
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from blogsite.errors import Conflict, NotFound
from blogsite.models import Blog, User

logger = logging.getLogger(__name__)

MUTATION_RETRIES = 3
OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def to_object_id(value):
    """ObjectId for a 24-hex string, or None for anything else."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not OBJECT_ID_RE.match(value):
        return None
    return ObjectId(value)


class UserRepository:
    def __init__(self, collection):
        self.collection = collection

    def get(self, user_id, with_password=False):
        oid = to_object_id(user_id)
        if oid is None:
            return None
        projection = None if with_password else {'password': 0}
        data = self.collection.find_one({'_id': oid}, projection)
        return User.from_mongo(data) if data else None

    def find_by_email(self, email, with_password=False):
        projection = None if with_password else {'password': 0}
        data = self.collection.find_one({'email': email.lower()}, projection)
        return User.from_mongo(data) if data else None

    def is_taken(self, field, value, exclude_id=None):
        query = {field: value}
        if exclude_id is not None:
            query['_id'] = {'$ne': exclude_id}
        return self.collection.find_one(query, {'_id': 1}) is not None

    def insert(self, user):
        self.collection.insert_one(user.to_dict())
        return user

    def update_fields(self, user_id, fields):
        self.collection.update_one({'_id': user_id}, {'$set': fields})

    def many(self, user_ids):
        ids = [oid for oid in user_ids if oid is not None]
        if not ids:
            return {}
        cursor = self.collection.find({'_id': {'$in': ids}}, {'password': 0})
        return {data['_id']: User.from_mongo(data) for data in cursor}


class BlogRepository:
    def __init__(self, collection):
        self.collection = collection

    # --- reads ---

    def get(self, blog_id):
        oid = to_object_id(blog_id)
        if oid is None:
            return None
        data = self.collection.find_one({'_id': oid})
        return Blog.from_mongo(data) if data else None

    def get_and_count_view(self, id_or_slug):
        """Fetch by id (24-hex) or slug and bump its view counter."""
        oid = to_object_id(id_or_slug)
        query = {'_id': oid} if oid is not None else {'slug': id_or_slug}
        data = self.collection.find_one_and_update(
            query, {'$inc': {'view_count': 1}}, return_document=ReturnDocument.AFTER)
        return Blog.from_mongo(data) if data else None

    def list_recent(self, tag=None):
        query = {'tags': tag} if tag else {}
        cursor = self.collection.find(query).sort('created_at', DESCENDING)
        return [Blog.from_mongo(data) for data in cursor]

    def list_by_author(self, author_id):
        cursor = self.collection.find({'author': author_id}).sort('created_at', DESCENDING)
        return [Blog.from_mongo(data) for data in cursor]

    def list_popular(self, limit=5):
        cursor = self.collection.find({'status': 'published'})
        blogs = [Blog.from_mongo(data) for data in cursor]
        blogs.sort(key=lambda b: (b.view_count, len(b.likes)), reverse=True)
        return blogs[:limit]

    # --- writes ---

    def unique_slug(self, blog):
        slug = blog.next_slug()
        candidate, n = slug, 1
        while self.collection.find_one({'slug': candidate, '_id': {'$ne': blog._id}}, {'_id': 1}):
            candidate = f'{slug}-{n}'
            n += 1
        return candidate

    def insert(self, blog):
        blog.slug = self.unique_slug(blog)
        blog.touch()
        self.collection.insert_one(blog.to_dict())
        blog.is_new = False
        blog.title_changed = False
        return blog

    def save(self, blog):
        """Write the aggregate back if nobody else saved it since it was read."""
        if blog.title_changed:
            blog.slug = self.unique_slug(blog)
        blog.touch()
        doc = blog.to_dict()
        del doc['_id']
        # views are counted with $inc outside the version check
        del doc['view_count']
        doc['version'] = blog.version + 1
        query = {'_id': blog._id, 'version': blog.version}
        if not blog.version:
            # documents written before versioning have no version field
            query = {'_id': blog._id, '$or': [{'version': 0}, {'version': {'$exists': False}}]}
        result = self.collection.update_one(query, {'$set': doc})
        if not result.matched_count:
            return False
        blog.version += 1
        blog.title_changed = False
        return True

    def mutate(self, blog_id, change, retries=MUTATION_RETRIES):
        """Load, apply `change(blog)` and save, re-reading on version conflicts.

        `change` may raise to abort; its return value is passed back with the
        saved blog.
        """
        for attempt in range(1, retries + 1):
            blog = self.get(blog_id)
            if blog is None:
                raise NotFound('Blog not found')
            outcome = change(blog)
            if self.save(blog):
                return blog, outcome
            logger.warning(f"Concurrent update on blog {blog.id}, attempt {attempt}/{retries}")
        raise Conflict('Blog was modified concurrently, please retry')

    def delete(self, blog_id):
        # comments are embedded, so this removes them with the post
        return self.collection.delete_one({'_id': to_object_id(blog_id)}).deleted_count


class Store:
    """Credential and Content Store over one Mongo database."""

    def __init__(self, db, client=None):
        self.db = db
        self.client = client
        self.users = UserRepository(db.users)
        self.blogs = BlogRepository(db.blogs)

    def ping(self):
        try:
            self.db.command('ping')
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def wait_until_ready(self, retry_interval=5, sleep=time.sleep):
        """Block until the server answers, retrying forever with a fixed backoff."""
        attempt = 0
        while not self.ping():
            attempt += 1
            logger.error(f"MongoDB unavailable (attempt {attempt}), retrying in {retry_interval}s")
            sleep(retry_interval)
        logger.info('MongoDB connected')

    def ensure_indexes(self):
        self.db.users.create_index([('username', ASCENDING)], unique=True)
        self.db.users.create_index([('email', ASCENDING)], unique=True)
        self.db.users.create_index([('created_at', DESCENDING)])
        self.db.blogs.create_index([('slug', ASCENDING)], unique=True)
        self.db.blogs.create_index([('author', ASCENDING)])
        self.db.blogs.create_index([('created_at', DESCENDING)])
        self.db.blogs.create_index([('tags', ASCENDING)])
        self.db.blogs.create_index([('status', ASCENDING), ('created_at', DESCENDING)])
        self.db.blogs.create_index([('comments.user', ASCENDING)])
        self.db.blogs.update_many({'version': {'$exists': False}}, {'$set': {'version': 0}})

    def close(self):
        if self.client is not None:
            self.client.close()
            logger.info('MongoDB connection closed')


def get_store():
    return current_app.extensions['blogsite.store']
