# blogsite/policies.py
from blogsite.errors import Forbidden


def is_blog_owner(blog, actor):
    return actor is not None and blog.author == actor._id


def check_blog_owner(blog, actor):
    """Only the author may update or delete a post."""
    if not is_blog_owner(blog, actor):
        raise Forbidden('Not authorized')


def check_comment_removal(blog, comment, actor):
    """A comment may be removed by whoever wrote it or by the post's author."""
    if actor is not None and comment.user == actor._id:
        return
    if is_blog_owner(blog, actor):
        return
    raise Forbidden('Not authorized to delete this comment')
