"""
Unit tests for the ntfy notifier. requests is mocked throughout.
"""
import pytest
import requests

from boggle.notifier import (
    Notifier,
    format_standings,
    game_finished_message,
    tournament_completed_message,
)


@pytest.fixture
def mock_post(mocker):
    post = mocker.patch('boggle.notifier.requests.post')
    post.return_value.ok = True
    return post


@pytest.fixture
def notifier():
    return Notifier(server='https://ntfy.example/', topic='boggle', timeout=3,
                    async_send=False, app_url='https://play.example/')


class TestMessages:
    """Tests for message formatting."""

    def test_medals_for_top_three(self):
        text = format_standings([('A', 5), ('B', 4), ('C', 3), ('D', 1)])
        lines = text.split('\n')
        assert lines[0] == '🥇 A: 5 pts'
        assert lines[1] == '🥈 B: 4 pts'
        assert lines[2] == '🥉 C: 3 pts'
        assert lines[3] == '   D: 1 pts'

    def test_game_finished_message(self):
        text = game_finished_message([('Alice', 7), ('Bob', 3)])
        assert 'Alice wins with 7 points!' in text
        assert '(2 players)' in text
        assert 'Total points scored: 10' in text

    def test_single_player_wording(self):
        assert '(1 player)' in game_finished_message([('Alice', 7)])

    def test_tournament_completed_message(self):
        text = tournament_completed_message([('Alice', 12), ('Bob', 9)], ('Alice', 12), 3, 10)
        assert 'Alice wins the tournament with 12 points!' in text
        assert 'Games played: 3' in text
        assert 'Target score: 10' in text


class TestSend:
    """Tests for Notifier.send."""

    def test_posts_json_payload(self, notifier, mock_post):
        notifier.send('Title', 'Body', priority='high', tags=['a', 'b'], click='https://x')

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == 'https://ntfy.example'
        assert kwargs['timeout'] == 3
        assert kwargs['json'] == {
            'topic': 'boggle',
            'title': 'Title',
            'message': 'Body',
            'priority': 4,
            'tags': ['a', 'b'],
            'click': 'https://x',
        }

    def test_unknown_priority_falls_back_to_default(self, notifier, mock_post):
        notifier.send('Title', 'Body', priority='urgent-ish')
        assert mock_post.call_args.kwargs['json']['priority'] == 3

    def test_no_topic_skips_sending(self, mock_post, caplog):
        Notifier(topic='', async_send=False).send('Title', 'Body')
        mock_post.assert_not_called()
        assert 'NTFY_TOPIC not configured' in caplog.text

    def test_network_error_is_swallowed(self, notifier, mock_post, caplog):
        mock_post.side_effect = requests.ConnectionError('boom')
        notifier.send('Title', 'Body')
        assert 'Failed to send notification' in caplog.text

    def test_rejected_response_is_logged(self, notifier, mock_post, caplog):
        mock_post.return_value.ok = False
        mock_post.return_value.status_code = 500
        mock_post.return_value.text = 'nope'
        notifier.send('Title', 'Body')
        assert 'Notification rejected (500)' in caplog.text

    def test_async_send_uses_thread(self, mocker, mock_post):
        thread = mocker.patch('boggle.notifier.Thread')
        notifier = Notifier(topic='boggle', async_send=True)
        notifier.send('Title', 'Body')

        thread.assert_called_once()
        assert thread.call_args.kwargs['daemon'] is True
        thread.return_value.start.assert_called_once()
        mock_post.assert_not_called()


class TestEvents:
    """Tests for the game and tournament announcements."""

    def test_game_finished_links_to_game(self, notifier, mock_post):
        notifier.game_finished('game_1', [('Alice', 3)])
        payload = mock_post.call_args.kwargs['json']
        assert payload['click'] == 'https://play.example/boggle/?game=game_1'
        assert payload['priority'] == 3

    def test_game_finished_without_players_sends_nothing(self, notifier, mock_post):
        notifier.game_finished('game_1', [])
        mock_post.assert_not_called()

    def test_tournament_completed_is_high_priority(self, notifier, mock_post):
        notifier.tournament_completed('tourn_1', [('Alice', 12)], ('Alice', 12), 2, 10)
        payload = mock_post.call_args.kwargs['json']
        assert payload['priority'] == 4
        assert payload['click'] == 'https://play.example/boggle/?tournament=tourn_1'
        assert 'winner' in payload['tags']

    def test_from_config(self):
        n = Notifier.from_config({'NTFY_TOPIC': 't', 'NTFY_ASYNC': False, 'APP_URL': 'http://a'})
        assert n.topic == 't'
        assert n.async_send is False
        assert n.server == 'https://ntfy.sh'
