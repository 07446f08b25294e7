# blogsite/models.py
import datetime
import re

from bson.objectid import ObjectId
from slugify import slugify

from blogsite.passwords import hash_password, check_password

DEFAULT_AVATAR = 'avatar1.png'

SUMMARY_LENGTH = 197
HTML_TAG_RE = re.compile(r'<[^>]+>')


def utcnow():
    # Mongo stores naive UTC datetimes with millisecond precision
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def isoformat(value):
    return value.isoformat() + 'Z' if value else None


def slugify_title(title):
    return slugify(title) or 'post'


def time_suffix(now=None):
    """Last four digits of the millisecond clock."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return str(int(now.timestamp() * 1000))[-4:]


def summarize(content):
    return HTML_TAG_RE.sub('', content)[:SUMMARY_LENGTH] + '...'


def normalize_tags(tags):
    seen = []
    for tag in tags or []:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# --- User ---

class User:
    """Credential Store record. `password` only ever holds a bcrypt hash."""

    def __init__(self, username, email, password=None, _id=None, phone_number='',
                 avatar_url=DEFAULT_AVATAR, role='user', preferences=None, last_login=None,
                 is_active=True, password_changed_at=None, created_at=None):
        self._id = _id or ObjectId()
        self.username = username
        self.email = email
        self.password = password
        self.phone_number = phone_number
        self.avatar_url = avatar_url
        self.role = role
        self.preferences = {
            'dark_mode': False,
            'email_notifications': True,
            'language': 'en',
        }
        self.preferences.update(preferences or {})
        self.last_login = last_login
        self.is_active = is_active
        self.password_changed_at = password_changed_at
        self.created_at = created_at or utcnow()

    @property
    def id(self):
        return str(self._id)

    @classmethod
    def register(cls, username, email, password):
        user = cls(username=username, email=email)
        user.set_password(password, initial=True)
        return user

    def set_password(self, plaintext, initial=False):
        self.password = hash_password(plaintext)
        if not initial:
            # one second back so a token minted right after the change stays valid
            self.password_changed_at = utcnow() - datetime.timedelta(seconds=1)

    def check_password(self, plaintext):
        return check_password(plaintext, self.password)

    def password_changed_after(self, issued_at):
        if not self.password_changed_at or issued_at is None:
            return False
        changed = self.password_changed_at.replace(tzinfo=datetime.timezone.utc).timestamp()
        return int(issued_at) < int(changed)

    def to_dict(self):
        return {
            '_id': self._id,
            'username': self.username,
            'email': self.email,
            'password': self.password,
            'phone_number': self.phone_number,
            'avatar_url': self.avatar_url,
            'role': self.role,
            'preferences': dict(self.preferences),
            'last_login': self.last_login,
            'is_active': self.is_active,
            'password_changed_at': self.password_changed_at,
            'created_at': self.created_at,
        }

    @staticmethod
    def from_mongo(data):
        return User(
            _id=data.get('_id'),
            username=data.get('username'),
            email=data.get('email'),
            password=data.get('password'),
            phone_number=data.get('phone_number', ''),
            avatar_url=data.get('avatar_url', DEFAULT_AVATAR),
            role=data.get('role', 'user'),
            preferences=data.get('preferences'),
            last_login=data.get('last_login'),
            is_active=data.get('is_active', True),
            password_changed_at=data.get('password_changed_at'),
            created_at=data.get('created_at'),
        )

    def public_preferences(self):
        return {
            'darkMode': self.preferences.get('dark_mode', False),
            'emailNotifications': self.preferences.get('email_notifications', True),
            'language': self.preferences.get('language', 'en'),
        }

    def summary(self):
        """Fields exposed when the user appears as a blog or comment author."""
        return {
            '_id': self.id,
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'avatarUrl': self.avatar_url,
        }

    def profile(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'avatarUrl': self.avatar_url,
            'phoneNumber': self.phone_number,
            'preferences': self.public_preferences(),
        }

    def account(self):
        """Everything about the account except credentials, for /me."""
        data = self.profile()
        data.update({
            '_id': self.id,
            'role': self.role,
            'isActive': self.is_active,
            'lastLogin': isoformat(self.last_login),
            'createdAt': isoformat(self.created_at),
        })
        return data

    def __repr__(self):
        return f'<User {self.username}>'


# --- Blog aggregate ---

class Comment:
    def __init__(self, user, text, _id=None, created_at=None):
        self._id = _id or ObjectId()
        self.user = user
        self.text = text
        self.created_at = created_at or utcnow()

    @property
    def id(self):
        return str(self._id)

    def to_dict(self):
        return {
            '_id': self._id,
            'user': self.user,
            'text': self.text,
            'created_at': self.created_at,
        }

    @staticmethod
    def from_mongo(data):
        return Comment(
            _id=data.get('_id'),
            user=data.get('user'),
            text=data.get('text'),
            created_at=data.get('created_at'),
        )

    def to_json(self, authors):
        user = authors.get(self.user)
        return {
            '_id': self.id,
            'id': self.id,
            'user': user.summary() if user else str(self.user),
            'text': self.text,
            'createdAt': isoformat(self.created_at),
        }


class Blog:
    """A post with its likes and comments.

    Comments are held in an insertion-ordered dict keyed by comment id.
    `version` is bumped by every save and guards concurrent writers.
    """

    def __init__(self, title, content, author, _id=None, slug=None, summary=None,
                 status='draft', featured_image='', tags=None, likes=None, comments=None,
                 view_count=0, created_at=None, updated_at=None, version=0):
        self._id = _id or ObjectId()
        self.title = title
        self.slug = slug
        self.content = content
        self.summary = summary
        self.author = author
        self.status = status
        self.featured_image = featured_image
        self.tags = normalize_tags(tags)
        self.likes = list(likes or [])
        self.comments = {c._id: c for c in comments or []}
        self.view_count = view_count
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at
        self.version = version

        self.is_new = _id is None
        self.title_changed = self.is_new
        if self.is_new and not self.summary and self.content:
            self.summary = summarize(self.content)

    @property
    def id(self):
        return str(self._id)

    # --- field updates ---

    def set_title(self, title):
        if title != self.title:
            self.title = title
            self.title_changed = True

    def set_content(self, content):
        if content != self.content:
            self.content = content
            if not self.summary:
                self.summary = summarize(content)

    def set_tags(self, tags):
        self.tags = normalize_tags(tags)

    def next_slug(self, now=None):
        base = slugify_title(self.title)
        if self.is_new:
            return base
        return f'{base}-{time_suffix(now)}'

    # --- likes ---

    def is_liked_by(self, user_id):
        return user_id in self.likes

    def toggle_like(self, user_id):
        """Flip the user's like. Returns True when the post is now liked."""
        if user_id in self.likes:
            self.likes.remove(user_id)
            return False
        self.likes.append(user_id)
        return True

    # --- comments ---

    def add_comment(self, user_id, text):
        comment = Comment(user=user_id, text=text)
        self.comments[comment._id] = comment
        return comment

    def get_comment(self, comment_id):
        return self.comments.get(comment_id)

    def remove_comment(self, comment_id):
        return self.comments.pop(comment_id, None)

    def touch(self):
        self.updated_at = utcnow()

    # --- serialization ---

    def to_dict(self):
        return {
            '_id': self._id,
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'summary': self.summary,
            'author': self.author,
            'status': self.status,
            'featured_image': self.featured_image,
            'tags': list(self.tags),
            'likes': list(self.likes),
            'comments': [c.to_dict() for c in self.comments.values()],
            'view_count': self.view_count,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'version': self.version,
        }

    @staticmethod
    def from_mongo(data):
        blog = Blog(
            _id=data.get('_id'),
            title=data.get('title'),
            slug=data.get('slug'),
            content=data.get('content'),
            summary=data.get('summary'),
            author=data.get('author'),
            status=data.get('status', 'draft'),
            featured_image=data.get('featured_image', ''),
            tags=data.get('tags'),
            likes=data.get('likes'),
            comments=[Comment.from_mongo(c) for c in data.get('comments', [])],
            view_count=data.get('view_count', 0),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
            version=data.get('version', 0),
        )
        return blog

    def user_ids(self):
        ids = {self.author}
        ids.update(c.user for c in self.comments.values())
        return ids

    def to_json(self, authors):
        author = authors.get(self.author)
        return {
            '_id': self.id,
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'summary': self.summary,
            'author': author.summary() if author else str(self.author),
            'status': self.status,
            'featuredImage': self.featured_image,
            'tags': list(self.tags),
            'likes': [str(user_id) for user_id in self.likes],
            'likeCount': len(self.likes),
            'comments': [c.to_json(authors) for c in self.comments.values()],
            'commentCount': len(self.comments),
            'viewCount': self.view_count,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Blog {self.slug}>'
