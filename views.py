import logging

from flask import Blueprint, current_app, flash, redirect, render_template_string, request, url_for

import services
from answers import ANSWER_DEFAULT_VALUES, format_answer
from auth import authenticate, can_modify, current_user, login_required, login_user, logout_user, register_user
from errors import PlatformError
from models import PROBLEM_TYPES
from pagination import calculate_pagination, detect_device, page_buttons
from scoring import WAITING, is_unofficial_only, problem_display_score

logger = logging.getLogger(__name__)

views = Blueprint('views', __name__)

CONTEST_TABS = ('contest', 'result', 'discussion')


# ------------------ Template Functions ------------------
BASE_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }} // Problem Arena</title>
  <script type="text/javascript" id="MathJax-script" async
    src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js">
  </script>
  <script>
    MathJax = { tex: { inlineMath: [['$', '$'], ['\\\\(', '\\\\)']] } };
  </script>
  <style>
    * { box-sizing: border-box; }
    :root {
        --color-bg: #f5f7fb;
        --color-main: #2563eb;
        --color-text: #1f2937;
        --color-muted: #6b7280;
        --color-card: #ffffff;
        --color-border: #d1d5db;
        --color-success: #16a34a;
        --color-danger: #dc2626;
    }
    body { background: var(--color-bg); color: var(--color-text); font-family: system-ui, sans-serif; margin:0; padding:20px; }
    .container { max-width:1100px; margin:auto; }
    header { display:flex; justify-content:space-between; align-items:center; flex-wrap:wrap; gap:10px;
             padding-bottom:10px; border-bottom:2px solid var(--color-border); }
    header a { margin-left: 8px; }
    .card { background: var(--color-card); padding:20px; margin-top:15px; border:1px solid var(--color-border); border-radius:8px; }
    label { display:block; margin-bottom:5px; font-weight:600; }
    input, textarea, select { width:100%; padding:8px; border:1px solid var(--color-border); border-radius:6px; font-family:inherit; }
    button { padding:8px 16px; border:1px solid var(--color-main); background: var(--color-main); color:#fff; border-radius:6px; cursor:pointer; }
    button:disabled { opacity: .5; cursor: default; }
    .btn-outline { background: transparent; color: var(--color-main); }
    .btn-danger { background: var(--color-danger); border-color: var(--color-danger); }
    .small { color: var(--color-muted); font-size: 14px; }
    .score-good { color: var(--color-success); font-weight:bold; }
    .score-bad { color: var(--color-danger); font-weight:bold; }
    .unofficial { opacity: .4; }
    .flash-error { background:#fee2e2; color:#991b1b; }
    .flash-success { background:#dcfce7; color:#166534; }
    .pagination { display:flex; gap:4px; margin-top:15px; }
    .pagination .active { background: var(--color-main); color:#fff; }
    .tabs a { margin-right: 12px; }
    .tabs a.active { font-weight: bold; text-decoration: none; }
    .grid-2 { display:grid; grid-template-columns: 1fr 1fr; gap:15px; }
    .grid-4 { display:grid; grid-template-columns: repeat(4, 1fr); gap:15px; }
    table { width:100%; border-collapse: collapse; }
    th, td { padding:8px; border-bottom:1px solid var(--color-border); text-align:left; }
    .reply { margin-left: 32px; }
    @media (max-width: 768px) { .grid-2, .grid-4 { grid-template-columns: 1fr; } }
  </style>
</head>
<body>
  <div class="container">
    <header>
      <h2><a href="{{ url_for('views.problems_list') }}">Problem Arena</a></h2>
      <nav>
        <a href="{{ url_for('views.problems_list') }}">Problems</a>
        <a href="{{ url_for('views.contests_list') }}">Contests</a>
        {% if user %}
          <span class="small">Signed in as {{ user.name }}{% if user.is_admin %} (admin){% endif %}</span>
          <a href="{{ url_for('views.logout') }}">Logout</a>
        {% else %}
          <a href="{{ url_for('views.login_page') }}">Login</a>
          <a href="{{ url_for('views.register_page') }}">Register</a>
        {% endif %}
      </nav>
    </header>

    {% with messages = get_flashed_messages(with_categories=true) %}
      {% for category, message in messages %}
        <div class="card flash-{{ 'error' if category == 'error' else 'success' }}">{{ message }}</div>
      {% endfor %}
    {% endwith %}

    {{ content|safe }}
  </div>
</body>
</html>
"""

PAGINATION_TEMPLATE = """
{% if buttons %}
<div class="pagination">
  <a href="{{ page_url(buttons.prev) }}"><button class="btn-outline" {{ 'disabled' if buttons.prev_disabled }}>&lsaquo;</button></a>
  {% for p in buttons.pages %}
    <a href="{{ page_url(p) }}"><button class="btn-outline {{ 'active' if p == pagination.page }}">{{ p }}</button></a>
  {% endfor %}
  <a href="{{ page_url(buttons.next) }}"><button class="btn-outline" {{ 'disabled' if buttons.next_disabled }}>&rsaquo;</button></a>
  <span class="small">{{ pagination.contentFrom if pagination.count else 0 }}-{{ pagination.contentTo }} of {{ pagination.count }}</span>
</div>
{% endif %}
"""


def render_page(title, inner, **context):
    """Renders ``inner`` and wraps it in the base layout."""
    user = current_user()
    content = render_template_string(inner, user=user, **context)
    return render_template_string(BASE_TEMPLATE, content=content, title=title, user=user)


def _pagination_context(bounds, per_page, endpoint, **params):
    calculated = calculate_pagination(
        bounds['current_page'], bounds['total_pages'], bounds['total_records'], per_page,
        detect_device(request.headers.get('User-Agent'))
    )

    def page_url(page):
        return url_for(endpoint, page=page, **{k: v for k, v in params.items() if v})

    return {'pagination': calculated, 'buttons': page_buttons(calculated), 'page_url': page_url}


# ------------------ Auth pages ------------------

@views.route('/login', methods=['GET', 'POST'])
def login_page():
    """Credentials login form."""
    if request.method == 'GET':
        content = """
  <div class="card" style="max-width:420px; margin:50px auto;">
    <h3>Sign in</h3>
    <form method="POST">
      <label>Username</label>
      <input name="username" required autocomplete="username">
      <label>Password</label>
      <input name="password" type="password" required autocomplete="current-password">
      <br><br>
      <button type="submit" style="width:100%;">Login</button>
    </form>
  </div>
"""
        return render_page('Login', content)

    username = request.form.get('username', '').strip()
    user = authenticate(username, request.form.get('password', ''))
    if user is None:
        flash('Invalid username or password', 'error')
        return redirect(url_for('views.login_page'))

    login_user(user)
    flash(f'Welcome {user.name}!', 'success')
    next_url = request.args.get('next', '')
    if not next_url.startswith('/') or next_url.startswith('//'):
        next_url = url_for('views.problems_list')
    return redirect(next_url)


@views.route('/register', methods=['GET', 'POST'])
def register_page():
    if request.method == 'POST':
        try:
            user = register_user(request.form)
        except PlatformError as e:
            for message in (list(e.errors.values()) or [e.message]):
                flash(message, 'error')
            return redirect(url_for('views.register_page'))
        login_user(user)
        flash(f'Account created. Welcome {user.name}!', 'success')
        return redirect(url_for('views.problems_list'))

    content = """
  <div class="card" style="max-width:420px; margin:50px auto;">
    <h3>Create an account</h3>
    <form method="POST">
      <label>Username</label>
      <input name="username" required>
      <label>Display name</label>
      <input name="name">
      <label>Email</label>
      <input name="email" type="email">
      <label>Password</label>
      <input name="password" type="password" required autocomplete="new-password">
      <br><br>
      <button type="submit" style="width:100%;">Register</button>
    </form>
  </div>
"""
    return render_page('Register', content)


@views.route('/logout')
def logout():
    logout_user()
    flash('Signed out', 'success')
    return redirect(url_for('views.login_page'))


# ------------------ Problems ------------------

@views.route('/')
def index():
    return redirect(url_for('views.problems_list'))


@views.route('/problems')
def problems_list():
    """Searchable, sortable problem list."""
    args = request.args
    params = {
        'topic': args.get('topic', ''),
        'subTopic': args.get('subTopic', ''),
        'search': args.get('search', ''),
        'sort': args.get('sort', 'newest'),
    }
    problems, bounds = services.list_problems(
        topic=params['topic'], sub_topic=params['subTopic'], search=params['search'],
        sort=params['sort'], page=args.get('page', 1),
    )
    per_page = current_app.config['PROBLEM_PAGINATION_COUNT']

    content = """
  <div class="card">
    <h3>Problems</h3>
    <form method="GET" class="grid-4">
      <div><label>Search</label><input name="search" value="{{ params.search }}"></div>
      <div>
        <label>Topic</label>
        <select name="topic">
          <option value="">All</option>
          {% for t in topics %}<option value="{{ t.id }}" {{ 'selected' if t.id == params.topic }}>{{ t.name }}</option>{% endfor %}
        </select>
      </div>
      <div>
        <label>Subtopic</label>
        <select name="subTopic">
          <option value="">All</option>
          {% for t in topics %}{% for s in t.subTopics %}
            <option value="{{ s.id }}" {{ 'selected' if s.id == params.subTopic }}>{{ t.name }} / {{ s.name }}</option>
          {% endfor %}{% endfor %}
        </select>
      </div>
      <div>
        <label>Sort</label>
        <select name="sort">
          {% for s in sorts %}<option value="{{ s }}" {{ 'selected' if s == params.sort }}>{{ s }}</option>{% endfor %}
        </select>
      </div>
      <div><button type="submit">Apply</button></div>
    </form>
    {% if user %}<p><a href="{{ url_for('views.problem_create') }}">+ New problem</a></p>{% endif %}
  </div>

  {% for p in problems %}
  <div class="card">
    <h3><a href="{{ url_for('views.problem_detail', problem_id=p.id) }}">{{ p.title }}</a></h3>
    <p class="small">{{ p.topic.name }} / {{ p.sub_topic.name }} &middot; {{ p.views }} views &middot; {{ p.solved_count }} solved &middot; by {{ p.author_id }}</p>
  </div>
  {% else %}
  <div class="card"><p class="small">No problems match your search.</p></div>
  {% endfor %}
""" + PAGINATION_TEMPLATE
    return render_page(
        'Problems', content, problems=problems, params=params, topics=services.list_topics(),
        sorts=services.PROBLEM_SORTS, **_pagination_context(bounds, per_page, 'views.problems_list', **params)
    )


@views.route('/problem/<int:problem_id>')
def problem_detail(problem_id):
    """Statement, answer form and comments of one problem."""
    try:
        problem = services.get_problem(problem_id, count_view=True)
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.problems_list'))

    user = current_user()
    content = """
  <div class="card">
    <h2>{{ problem.title }}</h2>
    <p class="small">{{ problem.topic.name }} / {{ problem.sub_topic.name }} &middot; by {{ problem.author_id }}
      &middot; {{ problem.views }} views &middot; {{ problem.solved_count }} solved</p>
    {% if editable %}
      <a href="{{ url_for('views.problem_edit', problem_id=problem.id) }}">Edit</a>
      <form method="POST" action="{{ url_for('views.problem_delete', problem_id=problem.id) }}" style="display:inline"
            onsubmit="return confirm('Delete this problem?')">
        <button type="submit" class="btn-danger">Delete</button>
      </form>
    {% endif %}
    <h3>Problem Statement</h3>
    <article>{{ problem.statement | markdown }}</article>

    <h3>Your Answer {% if solved %}<span class="score-good">&#10004;</span>{% endif %}</h3>
    <form method="POST" action="{{ url_for('views.problem_answer', problem_id=problem.id) }}">
      {% if problem.type == 'matrix' %}
        <textarea name="answer" rows="4" placeholder="One row per line, cells separated by spaces" {{ 'disabled' if solved }}></textarea>
      {% else %}
        <input name="answer" {{ 'disabled' if solved }}>
      {% endif %}
      <br><br>
      <button type="submit" {{ 'disabled' if solved }}>Submit</button>
    </form>
  </div>

  <div class="card">
    <h3>Comments ({{ comments|length }})</h3>
    {% for c in comments %}
      <div>
        <strong>{{ c.author.name }}</strong> <span class="small">{{ c.createdAt }}</span>
        {{ c.description | markdown }}
        {% for r in replies.get(c.id, []) %}
          <div class="reply"><strong>{{ r.author.name }}</strong> <span class="small">{{ r.createdAt }}</span>{{ r.description | markdown }}</div>
        {% endfor %}
        {% if user %}
        <form method="POST" action="{{ url_for('views.problem_comment', problem_id=problem.id) }}" class="reply">
          <input type="hidden" name="commentId" value="{{ c.id }}">
          <input name="comment" placeholder="Reply...">
        </form>
        {% endif %}
      </div>
      <hr>
    {% endfor %}
    {% if user %}
    <form method="POST" action="{{ url_for('views.problem_comment', problem_id=problem.id) }}">
      <textarea name="comment" rows="3" placeholder="Write a comment (markdown supported)"></textarea>
      <br><br>
      <button type="submit">Comment</button>
    </form>
    {% endif %}
  </div>
"""
    comments = services.list_comments(problem.id)
    replies = {c['id']: services.list_replies(c['id']) for c in comments if c['replyCount']}
    solved = bool(user) and any(s.user_id == user.id for s in problem.solves)
    return render_page(
        problem.title, content, problem=problem, comments=comments, replies=replies, solved=solved,
        editable=can_modify(user, problem.author_id)
    )


@views.route('/problem/<int:problem_id>/answer', methods=['POST'])
def problem_answer(problem_id):
    try:
        verdict = services.check_problem_answer(problem_id, request.form.get('answer', ''), current_user())
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.problem_detail', problem_id=problem_id))

    if verdict:
        flash('Correct answer', 'success')
    else:
        cooldown = current_app.config['SUBMISSION_COOLDOWN_SECONDS']
        flash(f'Incorrect answer. You can answer again in {int(cooldown)}s', 'error')
    return redirect(url_for('views.problem_detail', problem_id=problem_id))


@views.route('/problem/<int:problem_id>/comment', methods=['POST'])
@login_required
def problem_comment(problem_id):
    data = {'problemId': problem_id, 'comment': request.form.get('comment'),
            'commentId': request.form.get('commentId')}
    try:
        services.add_comment(data, current_user())
        flash('Comment posted', 'success')
    except PlatformError as e:
        flash(e.errors.get('comment', e.message), 'error')
    return redirect(url_for('views.problem_detail', problem_id=problem_id))


PROBLEM_FORM_TEMPLATE = """
  <div class="card">
    <h3>{{ heading }}</h3>
    <form method="POST">
      <label>Title</label>
      <input name="title" value="{{ form.title }}" required>
      <div class="grid-4">
        <div>
          <label>Type</label>
          <select name="type">
            {% for t in types %}<option value="{{ t }}" {{ 'selected' if t == form.type }}>{{ t }}</option>{% endfor %}
          </select>
        </div>
        <div>
          <label>Topic</label>
          <select name="topicId">
            {% for t in topics %}<option value="{{ t.id }}" {{ 'selected' if t.id == form.topicId }}>{{ t.name }}</option>{% endfor %}
          </select>
        </div>
        <div>
          <label>Subtopic</label>
          <select name="subTopicId">
            {% for t in topics %}{% for s in t.subTopics %}
              <option value="{{ s.id }}" {{ 'selected' if s.id == form.subTopicId }}>{{ t.name }} / {{ s.name }}</option>
            {% endfor %}{% endfor %}
          </select>
        </div>
      </div>
      <label>Statement (markdown, use $A^B$ for math)</label>
      <textarea name="statement" rows="8" required>{{ form.statement }}</textarea>
      <label>Answer (matrix: one row per line)</label>
      <textarea name="answer" rows="3" required>{{ form.answer }}</textarea>
      <br><br>
      <button type="submit">Save</button>
    </form>
  </div>
"""


def _problem_form_data():
    return {key: request.form.get(key, '') for key in ('title', 'statement', 'type', 'answer', 'topicId', 'subTopicId')}


def _flash_errors(e):
    for field, message in e.errors.items():
        flash(f'{field}: {message}', 'error')
    if not e.errors:
        flash(e.message, 'error')


@views.route('/problem/new', methods=['GET', 'POST'])
@login_required
def problem_create():
    form = {'title': '', 'statement': '', 'type': 'short_answer', 'answer': ANSWER_DEFAULT_VALUES['short_answer'],
            'topicId': '', 'subTopicId': ''}
    if request.method == 'POST':
        form = _problem_form_data()
        try:
            problem = services.create_problem(form, current_user())
            flash('Problem created', 'success')
            return redirect(url_for('views.problem_detail', problem_id=problem.id))
        except PlatformError as e:
            _flash_errors(e)

    return render_page('New problem', PROBLEM_FORM_TEMPLATE, heading='New problem', form=form,
                       types=PROBLEM_TYPES, topics=services.list_topics())


@views.route('/problem/<int:problem_id>/edit', methods=['GET', 'POST'])
@login_required
def problem_edit(problem_id):
    try:
        problem = services.get_problem(problem_id)
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.problems_list'))

    if not can_modify(current_user(), problem.author_id):
        flash('Only the author can edit this problem.', 'error')
        return redirect(url_for('views.problem_detail', problem_id=problem_id))

    if request.method == 'POST':
        form = _problem_form_data()
        form['id'] = problem_id
        try:
            services.update_problem(form, current_user())
            flash(f'Problem {problem_id} updated.', 'success')
            return redirect(url_for('views.problem_detail', problem_id=problem_id))
        except PlatformError as e:
            _flash_errors(e)
    else:
        form = {
            'title': problem.title, 'statement': problem.statement, 'type': problem.type,
            'answer': format_answer(problem.type, problem.decoded_answer),
            'topicId': problem.topic_id, 'subTopicId': problem.sub_topic_id,
        }

    return render_page('Edit problem', PROBLEM_FORM_TEMPLATE, heading=f'Edit problem {problem_id}', form=form,
                       types=PROBLEM_TYPES, topics=services.list_topics())


@views.route('/problem/<int:problem_id>/delete', methods=['POST'])
@login_required
def problem_delete(problem_id):
    try:
        services.delete_problem(problem_id, current_user())
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.problem_detail', problem_id=problem_id))
    flash('Problem deleted', 'success')
    return redirect(url_for('views.problems_list'))


# ------------------ Contests ------------------

@views.route('/contests')
def contests_list():
    status = request.args.get('status', '')
    contests, bounds = services.list_contests(status=status or None, page=request.args.get('page', 1))
    per_page = current_app.config['CONTEST_PAGINATION_COUNT']

    content = """
  <div class="card">
    <h3>Contests</h3>
    <div class="tabs">
      <a href="{{ url_for('views.contests_list') }}" class="{{ 'active' if not status }}">All</a>
      {% for s in statuses %}<a href="{{ url_for('views.contests_list', status=s) }}" class="{{ 'active' if s == status }}">{{ s }}</a>{% endfor %}
    </div>
    {% if user %}<p><a href="{{ url_for('views.contest_create') }}">+ New contest</a></p>{% endif %}
    <table>
      <tr><th>Title</th><th>Status</th><th>Start (UTC)</th><th>End (UTC)</th><th>Problems</th><th>Participants</th></tr>
      {% for c in contests %}
      <tr>
        <td><a href="{{ url_for('views.contest_detail', contest_id=c.id) }}">{{ c.title }}</a></td>
        <td>{{ c.status }}</td><td>{{ c.startAt }}</td><td>{{ c.endAt }}</td>
        <td>{{ c.problemsCount }}</td><td>{{ c.participants }}</td>
      </tr>
      {% endfor %}
    </table>
  </div>
""" + PAGINATION_TEMPLATE
    return render_page(
        'Contests', content, contests=[services.contest_summary(c) for c in contests], status=status,
        statuses=services.CONTEST_STATUSES,
        **_pagination_context(bounds, per_page, 'views.contests_list', status=status)
    )


@views.route('/contest/<int:contest_id>')
def contest_detail(contest_id):
    """Contest page with the problem, result and discussion tabs."""
    tab = request.args.get('tab', 'contest')
    if tab not in CONTEST_TABS:
        tab = 'contest'

    try:
        contest = services.get_contest(contest_id, count_view=(tab == 'contest'))
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.contests_list'))

    user = current_user()
    data = services.contest_payload(contest, user)
    mine = services.user_contest_submissions(contest, user) if user else {}

    content = """
  <div class="card">
    <h2>{{ contest.title }}</h2>
    <p class="small">by {{ contest.authorId }} &middot; {{ contest.startAt }} &rarr; {{ contest.endAt }} (UTC)
      &middot; status: <strong>{{ contest.status }}</strong> &middot; {{ contest.participants }} participants</p>
    {% if editable %}
      <a href="{{ url_for('views.contest_edit', contest_id=contest.id) }}">Edit</a>
      <form method="POST" action="{{ url_for('views.contest_delete', contest_id=contest.id) }}"
            onsubmit="return confirm('Delete this contest?')">
        <button type="submit" class="btn-danger">Delete</button>
      </form>
    {% endif %}
    {{ contest.description | markdown }}
    <div class="tabs">
      {% for t in tabs %}<a href="{{ url_for('views.contest_detail', contest_id=contest.id, tab=t) }}" class="{{ 'active' if t == tab }}">{{ t|capitalize }}</a>{% endfor %}
    </div>
  </div>

  {% if tab == 'contest' %}
    {% if contest.status == 'waiting' and not contest.problemsData %}
      <div class="card"><p class="small">Problems are revealed when the contest starts.</p></div>
    {% endif %}
    {% for entry in contest.problemsData %}
      {% set p = entry.problem %}
      {% set attempt = mine.get(p.id) %}
      {% set shown = display_score(attempt) %}
      <div class="card">
        <h3>{{ letter(loop.index0) }}. {{ p.title }} <span class="small">({{ entry.score }} pts)</span>
          {% if shown is not none %}
            <span class="{{ 'score-good' if shown > 0 else 'score-bad' }} {{ 'unofficial' if unofficial_only(attempt) }}">{{ shown }}</span>
          {% endif %}
        </h3>
        <article>{{ p.statement | markdown }}</article>
        {% if user and contest.status != 'waiting' %}
        <form method="POST" action="{{ url_for('views.contest_submit', contest_id=contest.id, problem_id=p.id) }}">
          {% if p.type == 'matrix' %}<textarea name="answer" rows="3"></textarea>{% else %}<input name="answer">{% endif %}
          <br><br>
          <button type="submit">Submit{% if contest.status == 'closed' %} (unofficial){% endif %}</button>
        </form>
        {% endif %}
      </div>
    {% else %}
      {% if contest.status != 'waiting' %}<div class="card"><p>This contest has no problems.</p></div>{% endif %}
    {% endfor %}
  {% elif tab == 'result' %}
    <div class="card">
      <table>
        <tr><th>#</th><th>User</th>
          {% for entry in contest.problemsData %}<th>{{ letter(loop.index0) }}</th>{% endfor %}
          <th>Total</th><th>Unofficial</th></tr>
        {% for row in leaderboard %}
        <tr>
          <td>{{ row.rank }}</td><td>{{ row.userId }}</td>
          {% for entry in contest.problemsData %}
            {% set a = (row.answers | selectattr('problemId', 'equalto', entry.problem.id) | list | first) %}
            <td>{% if a %}<span class="{{ 'score-good' if display_score(a) > 0 else 'score-bad' }} {{ 'unofficial' if unofficial_only(a) }}">{{ display_score(a) }}</span>{% endif %}</td>
          {% endfor %}
          <td><strong>{{ row.totalScore }}</strong></td><td class="small">{{ row.unofficialScore }}</td>
        </tr>
        {% else %}
        <tr><td colspan="4" class="small">No submissions yet.</td></tr>
        {% endfor %}
      </table>
    </div>
  {% else %}
    <div class="card">
      <h3>Discussion</h3>
      {% for c in comments %}
        <p><strong>{{ c.author.name }}</strong> on
          <a href="{{ url_for('views.problem_detail', problem_id=c.problemId) }}">problem {{ c.problemId }}</a>
          <span class="small">{{ c.createdAt }} &middot; {{ c.replyCount }} replies</span></p>
        {{ c.description | markdown }}
        <hr>
      {% else %}
        <p class="small">No comments yet.</p>
      {% endfor %}
    </div>
  {% endif %}
"""
    leaderboard = services.contest_leaderboard(contest) if tab == 'result' else []
    comments = services.list_contest_comments(contest) if tab == 'discussion' and data['status'] != WAITING else []
    return render_page(
        contest.title, content, contest=data, tab=tab, tabs=CONTEST_TABS, mine=mine, leaderboard=leaderboard,
        comments=comments, editable=can_modify(user, contest.author_id),
        display_score=problem_display_score, unofficial_only=is_unofficial_only,
        letter=lambda index: chr(65 + index)
    )


@views.route('/contest/<int:contest_id>/submit/<int:problem_id>', methods=['POST'])
@login_required
def contest_submit(contest_id, problem_id):
    try:
        result = services.submit_contest_answer(contest_id, problem_id, request.form.get('answer', ''), current_user())
    except PlatformError as e:
        flash(e.errors.get('answer', e.message), 'error')
        return redirect(url_for('views.contest_detail', contest_id=contest_id))

    if result['correct']:
        flash(f"Correct answer! +{result['score']}{'' if result['official'] else ' (unofficial)'}", 'success')
    else:
        cooldown = current_app.config['SUBMISSION_COOLDOWN_SECONDS']
        flash(f'Incorrect answer. You can answer again in {int(cooldown)}s', 'error')
    return redirect(url_for('views.contest_detail', contest_id=contest_id))


CONTEST_FORM_TEMPLATE = """
  <div class="card">
    <h3>{{ heading }}</h3>
    <form method="POST">
      <label>Title</label>
      <input name="title" value="{{ form.title }}" required>
      <label>Description (markdown)</label>
      <textarea name="description" rows="4" required>{{ form.description }}</textarea>
      <div class="grid-2">
        <div><label>Start (UTC, YYYY-MM-DDTHH:MM)</label><input name="startAt" type="datetime-local" value="{{ form.startAt }}" required></div>
        <div><label>End (UTC, YYYY-MM-DDTHH:MM)</label><input name="endAt" type="datetime-local" value="{{ form.endAt }}" required></div>
      </div>
      <p class="small">One problem per line as "problemId###score", at most {{ problem_max }} problems.</p>
      <label>Problems</label>
      <textarea name="problems" rows="6" required>{{ form.problems }}</textarea>
      <br><br>
      <button type="submit">{{ submit_label }}</button>
    </form>
  </div>
"""

CONTEST_FORM_FIELDS = ('title', 'description', 'startAt', 'endAt', 'problems', 'topicId', 'subTopicId')


def _render_contest_form(heading, submit_label, form):
    return render_page(heading, CONTEST_FORM_TEMPLATE, heading=heading, submit_label=submit_label, form=form,
                       problem_max=current_app.config['CONTEST_PROBLEM_MAX'])


@views.route('/contest/new', methods=['GET', 'POST'])
@login_required
def contest_create():
    """Contest form; problems are entered one per line as ``problemId###score``."""
    form = dict.fromkeys(CONTEST_FORM_FIELDS, '')
    if request.method == 'POST':
        form = {key: request.form.get(key, '') for key in CONTEST_FORM_FIELDS}
        try:
            contest = services.create_contest(form, current_user())
            flash('Contest created', 'success')
            return redirect(url_for('views.contest_detail', contest_id=contest.id))
        except PlatformError as e:
            _flash_errors(e)

    return _render_contest_form('New contest', 'Create contest', form)


@views.route('/contest/<int:contest_id>/edit', methods=['GET', 'POST'])
@login_required
def contest_edit(contest_id):
    try:
        contest = services.get_contest(contest_id)
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.contests_list'))

    if not can_modify(current_user(), contest.author_id):
        flash('Only the author can edit this contest.', 'error')
        return redirect(url_for('views.contest_detail', contest_id=contest_id))

    if request.method == 'POST':
        form = {key: request.form.get(key, '') for key in CONTEST_FORM_FIELDS}
        try:
            services.update_contest({**form, 'id': contest_id}, current_user())
            flash(f'Contest {contest_id} updated.', 'success')
            return redirect(url_for('views.contest_detail', contest_id=contest_id))
        except PlatformError as e:
            _flash_errors(e)
    else:
        form = {
            'title': contest.title, 'description': contest.description,
            'startAt': contest.start_at.strftime('%Y-%m-%dT%H:%M'),
            'endAt': contest.end_at.strftime('%Y-%m-%dT%H:%M'),
            'problems': '\n'.join(f'{cp.problem_id}###{cp.score}' for cp in contest.to_problems),
            'topicId': contest.topic_id or '', 'subTopicId': contest.sub_topic_id or '',
        }

    return _render_contest_form(f'Edit contest {contest_id}', 'Save contest', form)


@views.route('/contest/<int:contest_id>/delete', methods=['POST'])
@login_required
def contest_delete(contest_id):
    try:
        services.delete_contest(contest_id, current_user())
    except PlatformError as e:
        flash(e.message, 'error')
        return redirect(url_for('views.contest_detail', contest_id=contest_id))
    flash('Contest deleted', 'success')
    return redirect(url_for('views.contests_list'))
