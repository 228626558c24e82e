import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./.api-test.sqlite3')
os.environ.setdefault('LOG_JSON', 'false')

from fastapi.testclient import TestClient

from expense_tracker import main
from expense_tracker.main import app

STATEMENT = '''RELEVÉ DES OPÉRATIONS
Date Valeur Nature de l'opération Débit Crédit
02/01/2025 02/01/2025 VIR INSTANTANE EMIS NET POUR: M. JORGE GOENAGA PEREZ 2 000,00
24/01/2025 24/01/2025 CARTE X2148 23/01 CARREFOUR CITY 11,24
27/02/2025 27/02/2025 REMISE CB 24/01 R70304 CT36631988501 179,37
'''


def test_health_ok():
    with TestClient(app) as client:
        r = client.get('/api/health')
        assert r.status_code == 200
        assert r.json()['status'] == 'OK'


def test_root_lists_endpoints():
    with TestClient(app) as client:
        r = client.get('/')
        assert r.status_code == 200
        assert r.json()['endpoints']['extract'] == '/api/extract-transactions'


def test_request_id_is_echoed():
    with TestClient(app) as client:
        r = client.get('/api/health', headers={'X-Request-ID': 'req-123'})
        assert r.headers['X-Request-ID'] == 'req-123'
        assert client.get('/').headers.get('X-Request-ID')


def test_extract_requires_text():
    with TestClient(app) as client:
        r = client.post('/api/extract-transactions', json={'pdfText': '   '})
        assert r.status_code == 400
        assert r.json()['detail'] == 'PDF text is required.'
        assert client.post('/api/extract-transactions', json={}).status_code == 400


def test_extract_transactions_and_run_history():
    with TestClient(app) as client:
        r = client.post('/api/extract-transactions', json={'pdfText': STATEMENT})
        assert r.status_code == 200
        body = r.json()
        assert body['success'] is True
        assert body['count'] == 2
        assert body['message'] == 'Extracted 2 debit transactions'
        assert [t['counterparty'] for t in body['transactions']] == ['M. JORGE GOENAGA PEREZ', 'CARREFOUR CITY']
        assert body['transactions'][0]['date'] == '02/01/2025'

        runs = client.get('/api/extractions', params={'limit': 1}).json()['extractions']
        assert runs[0]['id'] == body['run_id']
        assert runs[0]['source'] == 'text'
        assert runs[0]['expense_count'] == 2
        assert runs[0]['credit_count'] == 1
        assert runs[0]['total_amount'] == 2011.24


def test_extractions_limit_is_validated():
    with TestClient(app) as client:
        assert client.get('/api/extractions', params={'limit': 0}).status_code == 422


def test_extract_rejects_oversized_text(monkeypatch):
    monkeypatch.setattr(main, 'MAX_TEXT_CHARS', 10)
    with TestClient(app) as client:
        r = client.post('/api/extract-transactions', json={'pdfText': STATEMENT})
        assert r.status_code == 413


def test_categorize_transactions():
    with TestClient(app) as client:
        r = client.post('/api/categorize-transactions', json={'transactions': [
            {'description': 'PRELEVEMENT EUROPEEN 031906338 DE: GG CORPORATE', 'amount': '186,39'},
            {'description': 'HOLDING ZENITH'},
        ]})
        assert r.status_code == 200
        [first, second] = r.json()['transactions']
        assert first['index'] == 1
        assert first['amount'] == '186,39'
        assert first['category'] == 'INTERNET'
        assert first['counterparty'] == 'GG CORPORATE'
        assert second['category'] == 'AUTRES'
        assert second['confidence'] == 'low'


def test_parse_statement_requires_pdf_filename():
    with TestClient(app) as client:
        r = client.post('/api/parse/statement', files={'file': ('statement.txt', b'hello', 'text/plain')})
        assert r.status_code == 400
        assert r.json()['detail'] == 'Please upload a PDF file.'


def test_parse_statement_rejects_unreadable_pdf():
    with TestClient(app) as client:
        r = client.post('/api/parse/statement', files={'file': ('statement.pdf', b'not a pdf', 'application/pdf')})
        assert r.status_code == 400
        assert r.json()['detail'] == 'Uploaded file is not a readable PDF.'

        r = client.post('/api/parse/statement', files={'file': ('statement.pdf', b'', 'application/pdf')})
        assert r.status_code == 400
        assert r.json()['detail'] == 'Uploaded file is empty.'


def test_cors_origins(monkeypatch):
    monkeypatch.setenv('CORS_ALLOW_ORIGINS', 'https://a.example, ,https://b.example')
    assert main.cors_origins() == ['https://a.example', 'https://b.example']
    monkeypatch.delenv('CORS_ALLOW_ORIGINS')
    assert main.cors_origins() == main.DEV_ORIGINS
