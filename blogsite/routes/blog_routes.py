from flask import Blueprint, jsonify, g, current_app

from blogsite.auth import token_required
from blogsite.cache import cached
from blogsite.errors import NotFound, ValidationError
from blogsite.extensions import limiter
from blogsite.models import Blog
from blogsite.policies import check_blog_owner, check_comment_removal
from blogsite.routes.auth_routes import api_rate_limit
from blogsite.schemas import BlogCreateRequest, BlogUpdateRequest, CommentCreateRequest, parse
from blogsite.store import get_store, to_object_id

blog_bp = Blueprint('blog_api', __name__)
limiter.limit(api_rate_limit)(blog_bp)

POPULAR_DEFAULT = 5
POPULAR_MAX = 50


# --- helpers ---

def render(blogs):
    """Blogs as JSON with author and comment authors resolved."""
    user_ids = set()
    for blog in blogs:
        user_ids.update(blog.user_ids())
    authors = get_store().users.many(user_ids)
    return [blog.to_json(authors) for blog in blogs]


def render_one(blog):
    return render([blog])[0]


def blog_id_or_404(blog_id):
    oid = to_object_id(blog_id)
    if oid is None:
        raise NotFound('Blog not found')
    return oid


# --- reads ---

@blog_bp.route('', methods=['GET'])
@cached()
def list_blogs():
    blogs = get_store().blogs.list_recent(tag=g.query.get('tag'))
    return jsonify(render(blogs)), 200


@blog_bp.route('/popular', methods=['GET'])
@cached()
def popular_blogs():
    try:
        limit = int(g.query.get('limit', POPULAR_DEFAULT))
    except ValueError:
        raise ValidationError('limit must be a number')
    limit = max(1, min(limit, POPULAR_MAX))
    return jsonify(render(get_store().blogs.list_popular(limit))), 200


@blog_bp.route('/my-blogs', methods=['GET'])
@token_required
def my_blogs():
    blogs = get_store().blogs.list_by_author(g.current_user._id)
    return jsonify(render(blogs)), 200


@blog_bp.route('/<string:id_or_slug>', methods=['GET'])
@cached()
def get_blog(id_or_slug):
    blog = get_store().blogs.get_and_count_view(id_or_slug)
    if blog is None:
        raise NotFound('Blog not found')
    return jsonify(render_one(blog)), 200


# --- writes ---

@blog_bp.route('', methods=['POST'])
@token_required
def create_blog():
    data = parse(BlogCreateRequest, g.payload)
    blog = Blog(
        title=data.title,
        content=data.content,
        author=g.current_user._id,
        summary=data.summary or None,
        status=data.status,
        featured_image=data.featured_image,
        tags=data.tags,
    )
    get_store().blogs.insert(blog)
    current_app.logger.info(f"Blog {blog.id} created by user {g.current_user.id}")
    return jsonify(render_one(blog)), 201


@blog_bp.route('/<string:blog_id>', methods=['PUT'])
@token_required
def update_blog(blog_id):
    oid = blog_id_or_404(blog_id)
    changes = parse(BlogUpdateRequest, g.payload).changes()
    actor = g.current_user

    def apply(blog):
        check_blog_owner(blog, actor)
        if 'title' in changes:
            blog.set_title(changes['title'])
        if 'content' in changes:
            blog.set_content(changes['content'])
        if 'tags' in changes:
            blog.set_tags(changes['tags'])
        for field in ('summary', 'status', 'featured_image'):
            if field in changes:
                setattr(blog, field, changes[field])

    blog, _ = get_store().blogs.mutate(oid, apply)
    return jsonify(render_one(blog)), 200


@blog_bp.route('/<string:blog_id>', methods=['DELETE'])
@token_required
def delete_blog(blog_id):
    oid = blog_id_or_404(blog_id)
    blogs = get_store().blogs

    blog = blogs.get(oid)
    if blog is None:
        raise NotFound('Blog not found')
    check_blog_owner(blog, g.current_user)

    blogs.delete(oid)
    current_app.logger.info(f"Blog {blog.id} deleted by user {g.current_user.id}")
    return jsonify({'message': 'Blog deleted'}), 200


@blog_bp.route('/<string:blog_id>/like', methods=['POST'])
@token_required
def toggle_like(blog_id):
    oid = blog_id_or_404(blog_id)
    user_id = g.current_user._id

    blog, _ = get_store().blogs.mutate(oid, lambda blog: blog.toggle_like(user_id))
    return jsonify(render_one(blog)), 200


@blog_bp.route('/<string:blog_id>/comments', methods=['POST'])
@token_required
def add_comment(blog_id):
    oid = blog_id_or_404(blog_id)
    data = parse(CommentCreateRequest, g.payload)
    user_id = g.current_user._id

    blog, _ = get_store().blogs.mutate(oid, lambda blog: blog.add_comment(user_id, data.text))
    return jsonify(render_one(blog)), 200


@blog_bp.route('/<string:blog_id>/comments/<string:comment_id>', methods=['DELETE'])
@token_required
def delete_comment(blog_id, comment_id):
    oid = blog_id_or_404(blog_id)
    comment_oid = to_object_id(comment_id)
    actor = g.current_user

    def apply(blog):
        comment = blog.get_comment(comment_oid) if comment_oid else None
        if comment is None:
            raise NotFound('Comment not found')
        check_comment_removal(blog, comment, actor)
        blog.remove_comment(comment._id)

    blog, _ = get_store().blogs.mutate(oid, apply)
    return jsonify(render_one(blog)), 200
