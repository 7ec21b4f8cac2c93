import re

VISIBLE_PAGES = {'desktop': 5, 'mobile': 3}

_MOBILE_AGENT = re.compile(r'Mobi|Android|iPhone|iPod|Opera Mini|IEMobile', re.IGNORECASE)


def detect_device(user_agent):
    """Rough mobile/desktop split from the User-Agent header."""
    if user_agent and _MOBILE_AGENT.search(user_agent):
        return 'mobile'
    return 'desktop'


def page_bounds(total_records, page, per_page):
    total_pages = max(1, -(-total_records // per_page))
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    current_page = min(max(page, 1), total_pages)
    return {
        'total_records': total_records,
        'current_page': current_page,
        'total_pages': total_pages,
    }


def calculate_pagination(page, max_pages, count, per_page, device='desktop'):
    """Everything a page-button row needs to render itself."""
    visible_pages = min(VISIBLE_PAGES.get(device, VISIBLE_PAGES['desktop']), max_pages)
    half = visible_pages // 2

    if page + half >= max_pages:
        style = 'last'
    elif page - half <= 1:
        style = 'first'
    else:
        style = 'middle'

    return {
        'page': page,
        'maxPages': max_pages,
        'count': count,
        'visiblePages': visible_pages,
        'half': half,
        'style': style,
        'contentFrom': (page - 1) * per_page + 1,
        'contentTo': min(page * per_page, count),
    }


def page_buttons(pagination):
    page = pagination['page']
    max_pages = pagination['maxPages']
    visible = pagination['visiblePages']
    half = pagination['half']
    style = pagination['style']

    if style == 'middle':
        pages = [page + offset for offset in range(-half, visible - half)]
    elif style == 'last':
        pages = [max_pages - visible + i + 1 for i in range(visible)]
    else:
        pages = list(range(1, visible + 1))

    empty = pagination['count'] == 0
    return {
        'pages': pages,
        'prev': max(1, page - 1),
        'next': min(max_pages, page + 1),
        'prev_disabled': page == 1 or empty,
        'next_disabled': page == max_pages or empty,
    }
