"""Query-string pagination shared by the list endpoints."""
from flask import current_app, request

from fashionhub.exceptions import InvalidArgumentError


def page_args():
    """
    Read `page` (1-based) and `limit` from the query string.

    Returns:
        (page, limit, offset); limit is capped at MAX_PAGE_SIZE.
    """
    default_limit = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_limit = current_app.config.get('MAX_PAGE_SIZE', 200)

    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', default_limit, type=int)

    if page is None or page < 1:
        raise InvalidArgumentError('page must be a positive integer', field='page')
    if limit is None or limit < 1:
        raise InvalidArgumentError('limit must be a positive integer', field='limit')

    limit = min(limit, max_limit)
    return page, limit, (page - 1) * limit


def page_meta(page: int, limit: int, total: int) -> dict:
    pages = (total + limit - 1) // limit if total else 0
    return {'page': page, 'limit': limit, 'total': total, 'pages': pages}
