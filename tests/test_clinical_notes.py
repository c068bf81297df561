import pytest

from hms_tenancy.core.errors import NoteNotEditable, ValidationFailed
from hms_tenancy.repositories.base import DataScope
from hms_tenancy.repositories.clinical_notes import ClinicalNoteRepository
from hms_tenancy.schemas.clinical_note import ClinicalNoteFilters

BASE = '/api/clinical-notes'


@pytest.fixture()
def repo(provisioned_engine):
    return ClinicalNoteRepository(provisioned_engine)


def _note(repo, content='Patient stable.', patient_id=1, provider_id=10, **extra):
    data = {'patient_id': patient_id, 'provider_id': provider_id, 'note_type': 'progress_note', 'content': content}
    data.update(extra)
    return repo.create(data)


def test_repository_scope():
    assert ClinicalNoteRepository.scope is DataScope.GLOBAL


def test_new_notes_are_drafts(repo):
    note = _note(repo, summary='ok')
    assert note.status == 'draft'
    assert note.signed_at is None
    assert repo.get_versions(note.id) == []


def test_create_validation(repo):
    with pytest.raises(ValidationFailed):
        repo.create({'patient_id': 1, 'provider_id': 2, 'note_type': 'memo', 'content': 'x'})
    with pytest.raises(ValidationFailed):
        repo.create({'patient_id': 1, 'provider_id': 2, 'note_type': 'other', 'content': ''})


def test_content_change_snapshots_previous_version(repo):
    note = _note(repo, content='v1 text', summary='s1')

    repo.update(note.id, {'content': 'v2 text'})
    repo.update(note.id, {'summary': 's2'})
    current = repo.update(note.id, {'note_type': 'consultation'})

    assert current.content == 'v2 text'
    assert current.summary == 's2'
    assert current.note_type == 'consultation'

    versions = repo.get_versions(note.id)
    assert [v.version_number for v in versions] == [3, 2, 1]
    first = repo.get_version(note.id, 1)
    assert first.content == 'v1 text'
    assert first.summary == 's1'
    assert first.note_type == 'progress_note'
    assert repo.get_version(note.id, 3).note_type == 'progress_note'
    assert repo.get_version(note.id, 4) is None


def test_unchanged_values_do_not_create_versions(repo):
    note = _note(repo, content='same')
    repo.update(note.id, {'content': 'same'})
    assert repo.get_versions(note.id) == []


def test_sign_once(repo):
    note = _note(repo, content='final words')

    signed = repo.sign(note.id, signed_by=42)
    assert signed.status == 'signed'
    assert signed.signed_by == 42
    assert signed.signed_at is not None

    assert repo.sign(note.id, signed_by=43) is None
    again = repo.get_by_id(note.id)
    assert again.signed_by == 42
    assert again.content == 'final words'

    assert repo.sign(9999, signed_by=1) is None


def test_signed_note_cannot_be_edited(repo):
    note = _note(repo)
    repo.sign(note.id, signed_by=1)

    with pytest.raises(NoteNotEditable):
        repo.update(note.id, {'content': 'tampered'})
    assert repo.get_by_id(note.id).content == 'Patient stable.'
    assert repo.get_versions(note.id) == []


def test_update_missing_and_empty_patch(repo):
    assert repo.update(404, {'content': 'x'}) is None
    note = _note(repo)
    assert repo.update(note.id, {}).content == note.content


def test_get_with_versions(repo):
    note = _note(repo, content='a')
    repo.update(note.id, {'content': 'b'})

    loaded = repo.get_by_id(note.id, with_versions=True)
    assert [v.content for v in loaded.versions] == ['a']


def test_list_filters_search_and_pagination(repo):
    _note(repo, content='Chest pain resolved', patient_id=1, provider_id=10)
    _note(repo, content='Follow-up in 2 weeks', patient_id=1, provider_id=11, summary='chest x-ray clear')
    _note(repo, content='Knee 100% mobile', patient_id=2, provider_id=10, note_type='consultation')

    rows, total = repo.list(ClinicalNoteFilters(search='CHEST'))
    assert total == 2

    rows, total = repo.list(ClinicalNoteFilters(search='100%'))
    assert [r.patient_id for r in rows] == [2]

    rows, total = repo.list(ClinicalNoteFilters(search='_'))
    assert total == 0

    rows, total = repo.list(ClinicalNoteFilters(provider_id=10, limit=1))
    assert total == 2 and len(rows) == 1

    rows, total = repo.list(ClinicalNoteFilters(note_type='consultation'))
    assert total == 1

    assert len(repo.list_by_patient(1)) == 2
    assert len(repo.list_by_provider(11)) == 1


def test_delete_removes_versions(repo, provisioned_engine):
    note = _note(repo, content='a')
    repo.update(note.id, {'content': 'b'})

    assert repo.delete(note.id) is True
    assert repo.get_by_id(note.id) is None
    assert repo.get_versions(note.id) == []
    assert repo.delete(note.id) is False


def test_notes_api_flow(client):
    created = client.post(
        f'{BASE}/',
        json={'patient_id': 3, 'provider_id': 8, 'note_type': 'admission_note', 'content': 'Admitted.'},
    )
    assert created.status_code == 201
    note_id = created.json()['data']['id']

    edited = client.put(f'{BASE}/{note_id}', json={'content': 'Admitted overnight.'})
    assert edited.status_code == 200

    with_versions = client.get(f'{BASE}/{note_id}', params={'include_versions': 'true'}).json()['data']
    assert with_versions['versions'][0]['content'] == 'Admitted.'

    assert client.post(f'{BASE}/{note_id}/sign', json={'signed_by': 8}).status_code == 200
    second = client.post(f'{BASE}/{note_id}/sign', json={'signed_by': 8})
    assert second.status_code == 404
    assert second.json()['error']['msg'] == 'Clinical note not found or already signed'

    locked = client.put(f'{BASE}/{note_id}', json={'content': 'changed'})
    assert locked.status_code == 409
    assert locked.json()['error']['code'] == 'NOTE_LOCKED'

    listing = client.get(f'{BASE}/', params={'patient_id': 3}).json()
    assert listing['meta']['total'] == 1
    assert client.get(f'{BASE}/patient/3').json()['data'][0]['id'] == note_id
    assert client.get(f'{BASE}/provider/8').json()['data'][0]['id'] == note_id

    assert client.get(f'{BASE}/{note_id}/versions/1').json()['data']['content'] == 'Admitted.'
    assert client.get(f'{BASE}/{note_id}/versions/7').status_code == 404

    assert client.delete(f'{BASE}/{note_id}').status_code == 204
    assert client.get(f'{BASE}/{note_id}').status_code == 404


def test_notes_api_ignores_tenant_header(client, acme_headers):
    resp = client.post(
        f'{BASE}/',
        json={'patient_id': 3, 'provider_id': 8, 'note_type': 'other', 'content': 'x'},
        headers=acme_headers,
    )
    assert resp.status_code == 201
    assert client.get(f"{BASE}/{resp.json()['data']['id']}").status_code == 200


def test_notes_api_body_validation(client):
    resp = client.post(f'{BASE}/', json={'patient_id': 3, 'note_type': 'other', 'content': 'x'})
    assert resp.status_code == 422
    assert resp.json()['error']['code'] == 'VALIDATION_ERROR'
