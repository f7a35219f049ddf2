from flask import request


def page_args(default_limit=10, max_limit=100):
    """``(page, limit)`` from the query string, clamped to sane bounds."""
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    return page, min(max(limit, 1), max_limit)


def pagination(total, page, limit):
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit,
    }
