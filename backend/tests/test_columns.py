from datetime import date

import pytest

from expense_tracker.columns import Column, classify_candidate, classify_candidates, infer_column
from expense_tracker.diagnostics import RecordingObserver
from expense_tracker.matchers import RawCandidate, extract_candidates


@pytest.mark.parametrize('line', [
    '27/02/2025 27/02/2025 REMISE CB 24/01 R70304 CT36631988501 179,37',
    'VIREMENT RECU DE CLIENT SARL 480,00',
    'VIR INSTANTANE RECU 120,00',
    'VERSEMENT RECU AGENCE',
    'DEPOT ESPECE GUICHET',
    'ENCAISSEMENT CHEQUE',
])
def test_credit_keywords(line):
    column, keyword = infer_column(line, '')
    assert column is Column.CREDIT
    assert keyword is not None


@pytest.mark.parametrize('line,keyword', [
    ('VIR INSTANTANE EMIS NET POUR: M. JORGE GOENAGA PEREZ', 'VIR INSTANTANE EMIS'),
    ('PRELEVEMENT EUROPEEN 031906338 DE: GG CORPORATE', 'PRELEVEMENT'),
    ('CARTE X2148 23/01 CARREFOUR CITY', 'CARTE'),
    ('CHEQUE 0001234', 'CHEQUE'),
])
def test_debit_keywords(line, keyword):
    assert infer_column(line, '') == (Column.DEBIT, keyword)


def test_credit_wins_when_both_kinds_of_keyword_appear():
    column, keyword = infer_column('VIR RECU LOYER MARS', '')
    assert column is Column.CREDIT
    assert keyword == 'VIR RECU'


def test_matching_is_case_insensitive_and_reads_description():
    assert infer_column('', 'remise cb 24/01')[0] is Column.CREDIT


def test_unknown_transactions_default_to_debit():
    assert infer_column('15/03/2025 HOLDING ZENITH 42,00', 'HOLDING ZENITH') == (Column.DEBIT, None)


def test_exactly_one_column_amount_is_set():
    text = '''02/01/2025 02/01/2025 VIR INSTANTANE EMIS NET POUR: M. JORGE GOENAGA PEREZ 2 000,00
27/02/2025 27/02/2025 REMISE CB 24/01 R70304 CT36631988501 179,37
'''
    classified = classify_candidates(extract_candidates(text))
    assert {tx.column for tx in classified} == {Column.DEBIT, Column.CREDIT}
    for tx in classified:
        assert (tx.debit_amount is None) != (tx.credit_amount is None)
        assert (tx.debit_amount or tx.credit_amount) == tx.amount_text


def test_classify_candidate_reports_default_policy():
    obs = RecordingObserver()
    d = date(2025, 3, 15)
    c = RawCandidate(d, d, 'HOLDING ZENITH', '42,00', 'strict', '15/03/2025 15/03/2025 HOLDING ZENITH 42,00')
    tx = classify_candidate(c, obs)
    assert tx.column is Column.DEBIT
    assert tx.matched_keyword is None
    [event] = obs.named('columns.assigned')
    assert event.fields['default_policy'] is True


def test_classified_transaction_exposes_candidate_fields():
    c = RawCandidate(date(2025, 1, 24), date(2025, 1, 25), 'CARTE X2148 CARREFOUR CITY', '11,24', 'strict')
    tx = classify_candidate(c)
    assert tx.operation_date == date(2025, 1, 24)
    assert tx.value_date == date(2025, 1, 25)
    assert (tx.description, tx.amount_text) == ('CARTE X2148 CARREFOUR CITY', '11,24')
    assert (tx.debit_amount, tx.credit_amount) == ('11,24', None)
