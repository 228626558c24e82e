import logging

from expense_tracker import diagnostics
from expense_tracker.diagnostics import LoggingObserver, NullObserver, RecordingObserver, resolve_observer
from expense_tracker.logging_utils import (
    MAX_FIELD_CHARS,
    JsonFormatter,
    PlainTextFormatter,
    mask_iban,
    reset_request_id,
    scrub_field,
    set_request_id,
)


def _record(event_name, fields):
    record = logging.LogRecord('expense_tracker', logging.INFO, __file__, 1, event_name, None, None)
    record.event_name = event_name
    record.event_fields = fields
    return record


def test_mask_iban():
    assert mask_iban('FR7630003012340001234567890') == 'FR76*******************7890'
    assert mask_iban('FR76 3000 3012 3400 0123 4567 890') == 'FR76*******************7890'
    assert mask_iban('short') == 'short'


def test_scrub_field_masks_ibans_and_redacts_secrets():
    assert scrub_field('text', 'IBAN FR7630003012340001234567890 REF') == 'IBAN FR76*******************7890 REF'
    assert scrub_field('api_key', 'abc') == '[REDACTED]'
    assert scrub_field('headers', {'Authorization': 'Bearer x', 'host': 'h'}) == {
        'Authorization': '[REDACTED]',
        'host': 'h',
    }


def test_plain_text_formatter():
    token = set_request_id('rid-1')
    try:
        line = PlainTextFormatter().format(_record('dedup.completed', {'kept': 4, 'dropped': 12}))
    finally:
        reset_request_id(token)
    assert line == '[INFO] dedup.completed request_id=rid-1 kept=4 dropped=12'


def test_json_formatter_keeps_accents():
    line = JsonFormatter().format(_record('matcher.section_found', {'line': 'RELEVÉ'}))
    assert '"event": "matcher.section_found"' in line
    assert 'RELEVÉ' in line


def test_logging_observer_filters_and_adds_context(monkeypatch):
    calls = []
    monkeypatch.setattr(diagnostics, 'log_event', lambda level, name, **fields: calls.append((level, name, fields)))

    obs = LoggingObserver(min_level='info', source='pdf')
    obs.emit('debug', 'matcher.candidate_rejected', reason='invalid_date')
    obs.emit('info', 'pipeline.completed', debits=3)

    assert calls == [('info', 'pipeline.completed', {'source': 'pdf', 'debits': 3})]


def test_recording_and_null_observers():
    rec = RecordingObserver()
    rec.emit('INFO', 'dedup.completed', kept=1)
    assert rec.named('dedup.completed')[0].level == 'info'
    assert resolve_observer(rec) is rec
    assert isinstance(resolve_observer(None), NullObserver)


def test_long_statement_excerpts_are_truncated():
    out = scrub_field('text', 'A' * (MAX_FIELD_CHARS + 50))
    assert out == 'A' * MAX_FIELD_CHARS + '...'
