from report.renderer import render_summary, repository_rows, top_collaborators

DAY_MS = 24 * 60 * 60 * 1000


def _tree():
    return {
        'org': {
            'app': {
                '1': {'pullRequestAnalytics': {'timeFromOpenToClose': 2 * DAY_MS, 'totalReviews': 2},
                      'commitAnalytics': {'totalCommits': 3}, 'hasMultipleLinkedPrs': True},
                '2': {'pullRequestAnalytics': {'timeFromOpenToClose': None, 'totalReviews': 1},
                      'commitAnalytics': {'totalCommits': 1}, 'hasMultipleLinkedPrs': False},
            },
            'lib': {},
        }
    }


def test_repository_rows():
    rows = repository_rows(_tree())
    assert rows[0] == {'name': 'org/app', 'pull_requests': 2, 'commits': 4, 'reviews': 3,
                       'avg_days_to_close': 2.0, 'multiple_linked': 1}
    assert rows[1]['name'] == 'org/lib'
    assert rows[1]['avg_days_to_close'] is None


def test_top_collaborators_ranking():
    graph = [{'author': 'b', 'participants': ['x']}, {'author': 'a', 'participants': ['x', 'y']}, {'author': 'c', 'participants': ['z']}]
    assert top_collaborators(graph, limit=2) == [{'author': 'a', 'count': 2}, {'author': 'b', 'count': 1}]


def test_render_summary_markdown():
    md = render_summary(
        _tree(),
        untracked=[{'owner': 'org', 'repo': 'app', 'issue': 9}],
        multiply_linked=[],
        graph=[{'author': 'alice', 'participants': ['bob']}],
        generated_at='2024-01-01T00:00:00+00:00',
        orgs=['org'],
    )
    assert md.startswith('# Pull Request Analytics')
    assert 'Pull requests analyzed: **2**' in md
    assert '| org/app | 2 | 4 | 3 | 2.0 | 1 |' in md
    assert '| org/lib | 0 | 0 | 0 | - | 0 |' in md
    assert '- alice: 1 participant\n' in md
    assert '- org/app#9' in md


def test_render_summary_empty_run():
    md = render_summary({}, generated_at='now')
    assert '_No linked pull requests were analyzed._' in md
    assert '_No interactions recorded._' in md
    assert 'Untracked issues\n\n' not in md
