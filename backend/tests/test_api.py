import json

import pytest
from fastapi.testclient import TestClient

from loan_triangulation import main
from loan_triangulation.config import Config
from loan_triangulation.models import BackendPipelineResponse, PipelineJobStatus
from loan_triangulation.services.errors import FailureKind, PipelineError
from loan_triangulation.services.job_poller import JobFailed, StatusUpdate
from loan_triangulation.services.orchestrator import PackageProcessed
from loan_triangulation.services.presentation import build_package
from loan_triangulation.services.stages import StagePosition

from fakes import snapshot

PDF = b'%PDF-1.7 closing package'


@pytest.fixture()
def client():
    return TestClient(main.app)


def _parse_sse(body: str):
    events = []
    for block in body.strip().split('\n\n'):
        lines = dict(line.split(': ', 1) for line in block.splitlines())
        events.append((lines['event'], json.loads(lines['data'])))
    return events


class FakePipeline:
    """Stands in for ClosingPackagePipeline inside the relay background task."""

    instances = []

    def __init__(self, language=None, events=None):
        self.language = language
        self.events = events or []
        self.closed = False
        self.streamed = None
        FakePipeline.instances.append(self)

    def fetch_config(self):
        raise PipelineError('Config fetch failed')

    def stream(self, document, filename=None, config=None):
        self.streamed = (document, filename, config)
        yield from self.events

    def close(self):
        self.closed = True


def _install(monkeypatch, events):
    FakePipeline.instances = []
    monkeypatch.setattr(main, 'pipeline_factory', lambda language: FakePipeline(language, events))


def _upload(client, content=PDF, filename='package.pdf', language='en'):
    return client.post(
        f'/api/packages?language={language}',
        files={'file': (filename, content, 'application/pdf')},
    )


# ---------------------------------------------------------------------------
# triangulation endpoints
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'


def test_triangulate_pages(client):
    response = client.post('/api/triangulate', json={
        'language': 'en',
        'pages': [
            {'page_number': 1, 'predicted_label': 'Property - Tax Record Information Sheet',
             'extracted_fields': {'loan_number': '20414784'}},
            {'page_number': 7, 'predicted_label': 'Lender - Rate Note',
             'extracted_fields': {'loan_number': '20414784'}},
            {'page_number': 11, 'predicted_label': 'Mortgage - Closing Disclosure - Seller',
             'extracted_fields': {'borrower_name': 'Alya Renard-Van Mercer'}},
        ],
    })

    assert response.status_code == 200
    data = response.json()
    assert data['fields'] == ['borrower_name', 'property_address', 'loan_number']
    assert data['record']['loan_number']['final_value'] == '20414784'
    assert data['record']['loan_number']['source'] == 'Rate Note'
    assert data['record']['property_address']['confidence'] == 'None'
    assert data['cards'][0]['name'] == 'Borrower Name'


def test_triangulate_raw_result_with_schema(client, pipeline_result):
    response = client.post('/api/triangulate', json={
        'language': 'tr',
        'result': pipeline_result,
        'extraction_schema': {'loan_number': 'string'},
        'label_weights': {'tax-record': 12},
    })

    assert response.status_code == 200
    data = response.json()
    assert data['fields'] == ['loan_number']
    assert data['record']['loan_number']['source'] == 'Vergi Kaydı'


@pytest.mark.parametrize("payload", [
    {},
    {'pages': [{'page_number': 1}], 'language': 'de'},
    {'pages': [{'page_number': 1}, {'page_number': 1}]},
])
def test_triangulate_rejects_bad_requests(client, payload):
    response = client.post('/api/triangulate', json=payload)
    assert response.status_code == 400


def test_sample(client):
    response = client.get('/api/sample', params={'language': 'en'})

    assert response.status_code == 200
    record = response.json()['record']
    assert record['loan_number']['final_value'] == '20414784'
    assert record['property_address']['source'] == 'Rider'


def test_defaults(client):
    data = client.get('/api/config/defaults').json()

    assert 'Lender - Rate Note' in data['labels']
    assert list(data['extraction_schema']) == ['borrower_name', 'property_address', 'loan_number']
    assert data['trust_table']['loan_number']['rate-note'] == 10
    assert data['stage_catalog'][0] == 'DocumentLoaderAgent'
    assert data['languages'] == ['en', 'tr']


# ---------------------------------------------------------------------------
# package relay
# ---------------------------------------------------------------------------

def test_package_relay_streams_status_and_result(client, monkeypatch, pipeline_result):
    status = PipelineJobStatus.model_validate(snapshot('running', progress=40))
    result = BackendPipelineResponse.model_validate(pipeline_result)
    _install(monkeypatch, [
        StatusUpdate(
            job_id='job-1', status='running', progress=40,
            stage=StagePosition(label='PageClassifierAgent', index=2, total=6), snapshot=status,
        ),
        PackageProcessed(job_id='job-1', package=build_package(result, job_id='job-1', language='en')),
    ])

    response = _upload(client)
    assert response.status_code == 200
    relay_id = response.json()['relay_id']

    stream = client.get(f'/api/packages/{relay_id}/stream')
    events = _parse_sse(stream.text)

    assert [name for name, _ in events] == ['start', 'status', 'complete']
    assert events[1][1]['stage_index'] == 2
    complete = events[2][1]
    assert complete['origin'] == 'client'
    assert complete['page_count'] == 3
    loan = next(card for card in complete['fields'] if card['key'] == 'loan_number')
    assert loan['value'] == '20414784'

    pipeline = FakePipeline.instances[0]
    assert pipeline.language == 'en'
    assert pipeline.streamed == (PDF, 'package.pdf', None)
    assert pipeline.closed


def test_package_relay_streams_failure(client, monkeypatch):
    _install(monkeypatch, [
        JobFailed(job_id='job-1', message='OCR timeout', kind=FailureKind.BACKEND_FAILED),
    ])

    relay_id = _upload(client).json()['relay_id']
    events = _parse_sse(client.get(f'/api/packages/{relay_id}/stream').text)

    assert events[-1] == ('error', {'job_id': 'job-1', 'kind': 'backend_failed', 'message': 'OCR timeout'})


@pytest.mark.parametrize("filename,content", [
    ('package.txt', PDF),
    ('package.pdf', b''),
    ('package.pdf', b'not a pdf'),
])
def test_package_upload_validation(client, monkeypatch, filename, content):
    _install(monkeypatch, [])
    response = _upload(client, content=content, filename=filename)

    assert response.status_code == 400
    assert FakePipeline.instances == []


def test_unknown_relay_id(client):
    assert client.get('/api/packages/does-not-exist/stream').status_code == 404


def test_complete_event_reports_the_final_stage(client, monkeypatch, pipeline_result):
    result = BackendPipelineResponse.model_validate(pipeline_result)
    _install(monkeypatch, [
        PackageProcessed(
            job_id='job-1',
            package=build_package(result, job_id='job-1', language='en'),
            stage=StagePosition(label='FieldExtractionAgent', index=6, total=6),
        ),
    ])

    relay_id = _upload(client).json()['relay_id']
    complete = _parse_sse(client.get(f'/api/packages/{relay_id}/stream').text)[-1][1]

    assert (complete['stage'], complete['stage_index'], complete['stage_total']) == ('FieldExtractionAgent', 6, 6)


def test_relay_can_be_streamed_more_than_once(client, monkeypatch):
    _install(monkeypatch, [
        JobFailed(job_id='job-1', message='OCR timeout', kind=FailureKind.BACKEND_FAILED),
    ])

    relay_id = _upload(client).json()['relay_id']
    first = _parse_sse(client.get(f'/api/packages/{relay_id}/stream').text)
    second = _parse_sse(client.get(f'/api/packages/{relay_id}/stream').text)

    assert first == second
    assert [name for name, _ in first] == ['start', 'error']


def test_unstreamed_relays_are_released_after_retention(client, monkeypatch):
    monkeypatch.setattr(Config, 'RELAY_RETENTION_SECONDS', 0.0)
    _install(monkeypatch, [
        JobFailed(job_id='job-1', message='OCR timeout', kind=FailureKind.BACKEND_FAILED),
    ])

    relay_ids = [_upload(client).json()['relay_id'] for _ in range(5)]

    assert list(main.sse_messages) == relay_ids[-1:]
    assert list(main.sse_message_locks) == relay_ids[-1:]
    assert list(main.sse_finished_at) == relay_ids[-1:]
    assert client.get(f'/api/packages/{relay_ids[0]}/stream').status_code == 404


def test_sweep_keeps_relays_inside_retention(monkeypatch):
    monkeypatch.setattr(Config, 'RELAY_RETENTION_SECONDS', 60.0)
    monkeypatch.setattr(main, 'sse_messages', {'old': [], 'recent': [], 'running': []})
    monkeypatch.setattr(main, 'sse_message_locks', {'old': None, 'recent': None, 'running': None})
    monkeypatch.setattr(main, 'sse_finished_at', {'old': 100.0, 'recent': 150.0})

    main._sweep_finished_relays(now=170.0)

    assert sorted(main.sse_messages) == ['recent', 'running']
    assert sorted(main.sse_message_locks) == ['recent', 'running']
    assert main.sse_finished_at == {'recent': 150.0}
