import pytest

from hubstatus.cards import render_connection_cards, render_system_stats_cards
from hubstatus.dashboard import SystemStatus, format_bytes

CARD_MARK = 'class="bg-gradient-to-br from-gray-800 to-gray-700 p-6 rounded-xl'


def _system(**overrides):
    values = dict(
        cpu_percent=12.5,
        memory_percent=65.0,
        memory_used=2048,
        memory_total=4096,
        disk_percent=90.0,
        disk_used=512,
        disk_total=1024 * 1024,
        network_in=100.0,
        network_out=3000.0,
        uptime="1d 2h 3m",
        database_size=8192,
    )
    values.update(overrides)
    return SystemStatus(**values)


def test_stats_has_seven_cards():
    html = render_system_stats_cards(_system())
    assert html.count(CARD_MARK) == 7


def test_stats_shows_percentages_and_widths():
    html = render_system_stats_cards(_system())
    assert "12.5%</div>" in html
    assert 'style="width: 12.5%"' in html
    assert 'style="width: 65.0%"' in html
    assert 'style="width: 90.0%"' in html


@pytest.mark.parametrize(
    "percent, color",
    [(10.0, "bg-green-500"), (50.0, "bg-yellow-500"), (79.9, "bg-yellow-500"), (80.0, "bg-red-500")],
)
def test_cpu_bar_color(percent, color):
    html = render_system_stats_cards(_system(cpu_percent=percent))
    first_bar = html.split('style="width:')[0]
    assert first_bar.endswith(f'{color}" ')


def test_stats_uses_formatted_bytes():
    system = _system()
    html = render_system_stats_cards(system)
    assert f"{format_bytes(2048)} / {format_bytes(4096)}</div>" in html
    assert f"{format_bytes(3000.0)}/s</div>" in html
    assert f">{format_bytes(8192)}</div>" in html


def test_stats_escapes_uptime():
    html = render_system_stats_cards(_system(uptime="<b>&'\"</b>"))
    assert "&lt;b&gt;&amp;&#39;&#34;&lt;/b&gt;" in html
    assert "<b>" not in html


def test_stats_signal_bindings():
    html = render_system_stats_cards(_system())
    assert 'data-text="`${$cpuPercent}%`"' in html
    assert 'data-text="`${$memoryUsed} / ${$memoryTotal}`"' in html
    assert 'data-text="$uptime">1d 2h 3m</div>' in html


def test_connections_has_five_cards():
    html = render_connection_cards(_system())
    assert html.count(CARD_MARK) == 5


def test_connections_all_down():
    html = render_connection_cards(_system())
    assert html.count('<span class="text-red-400">Disconnected</span>') == 3
    assert html.count('<span class="text-red-400">Unreachable</span>') == 2
    assert "text-green-400\">" not in html.replace("'text-green-400'", "")


def test_connections_all_up():
    html = render_connection_cards(
        _system(
            database_connected=True,
            haproxy_connected=True,
            docker_connected=True,
            pi5_connected=True,
            pi52_connected=True,
        )
    )
    assert html.count('<span class="text-green-400">Connected</span>') == 3
    assert html.count('<span class="text-green-400">Reachable</span>') == 2
    assert '<i class="fab fa-docker text-cyan-500"></i>' in html
    assert "text-gray-500" not in html


def test_connection_host_labels():
    html = render_connection_cards(_system(pi5_connected=True))
    assert "Pi5 (192.168.2.136)" in html
    assert "Pi5-2 (192.168.2.135)" in html
    assert '<i class="fas fa-server text-purple-500"></i>' in html
    assert '<i class="fas fa-server text-gray-500"></i>' in html
    assert "data-text=\"$pi5Connected ? 'Reachable' : 'Unreachable'\"" in html