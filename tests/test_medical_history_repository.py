from datetime import date

import pytest

from hms_tenancy.core.errors import UnknownTenant, ValidationFailed
from hms_tenancy.repositories.base import DataScope
from hms_tenancy.repositories.medical_history import MedicalHistoryRepository
from hms_tenancy.schemas.medical_history import MedicalHistoryFilters

ACME = 'tenant_acme'
OTHER = 'tenant_other'


@pytest.fixture()
def repo(provisioned_engine):
    return MedicalHistoryRepository(provisioned_engine)


def _entry(category, name, patient_id=1, **extra):
    return {'category': category, 'patient_id': patient_id, 'name': name, **extra}


def test_repository_scope():
    assert MedicalHistoryRepository.scope is DataScope.TENANT


def test_create_writes_only_the_category_columns(repo):
    cond = repo.create(ACME, _entry('condition', 'Hypertension', icd_code='I10', severity='moderate'), actor_id=5)
    allergy = repo.create(ACME, _entry('allergy', 'Peanut'), actor_id=5)

    assert cond.id and cond.created_by == 5
    assert cond.icd_code == 'I10'
    assert cond.allergen_type is None
    assert cond.is_critical is None
    assert cond.procedure_code is None

    assert allergy.is_critical is False
    assert allergy.allergen_type == 'other'
    assert allergy.severity == 'mild'
    assert allergy.icd_code is None


def test_rows_are_isolated_per_tenant(repo):
    acme_row = repo.create(ACME, _entry('condition', 'Asthma'), actor_id=1)

    assert repo.get_by_id(ACME, acme_row.id) is not None
    assert repo.get_by_id(OTHER, acme_row.id) is None
    assert repo.list_by_patient(OTHER, 1) == ([], 0)
    assert repo.delete(OTHER, acme_row.id) is False
    assert repo.get_by_id(ACME, acme_row.id) is not None


def test_unknown_tenant(repo):
    with pytest.raises(UnknownTenant):
        repo.list_by_patient('tenant_ghost', 1)


def test_list_ordering_puts_active_critical_allergies_first(repo):
    old = repo.create(ACME, _entry('condition', 'Old', date_diagnosed='2018-05-01'), actor_id=1)
    new = repo.create(ACME, _entry('condition', 'New', date_diagnosed='2023-02-01'), actor_id=1)
    undated = repo.create(ACME, _entry('surgery', 'Appendectomy'), actor_id=1)
    critical = repo.create(ACME, _entry('allergy', 'Penicillin', is_critical=True, severity='severe'), actor_id=1)
    resolved_critical = repo.create(
        ACME, _entry('allergy', 'Latex', is_critical=True, status='resolved', date_diagnosed='2010-01-01'), actor_id=1
    )
    repo.create(ACME, _entry('condition', 'Someone else', patient_id=2), actor_id=1)

    rows, total = repo.list_by_patient(ACME, 1)

    assert total == 5
    assert [r.id for r in rows] == [critical.id, new.id, old.id, resolved_critical.id, undated.id]


def test_list_filters_and_pagination(repo):
    for i in range(5):
        repo.create(ACME, _entry('condition', f'C{i}', date_diagnosed=f'202{i}-01-01'), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Dust', allergen_type='environmental'), actor_id=1)

    rows, total = repo.list_by_patient(ACME, 1, MedicalHistoryFilters(category='condition', page=2, limit=2))
    assert total == 5
    assert [r.name for r in rows] == ['C2', 'C1']

    rows, total = repo.list_by_patient(
        ACME, 1, MedicalHistoryFilters(date_from=date(2021, 1, 1), date_to=date(2022, 12, 31))
    )
    assert total == 2
    assert {r.name for r in rows} == {'C1', 'C2'}

    rows, total = repo.list_by_patient(ACME, 1, MedicalHistoryFilters(category='allergy', is_critical=False))
    assert total == 1 and rows[0].name == 'Dust'


def test_sparse_update(repo):
    row = repo.create(
        ACME, _entry('condition', 'Migraine', icd_code='G43', severity='mild', notes='first visit'), actor_id=1
    )

    updated = repo.update(ACME, row.id, {'severity': 'severe'}, actor_id=9)

    assert updated.severity == 'severe'
    assert updated.icd_code == 'G43'
    assert updated.notes == 'first visit'
    assert updated.name == 'Migraine'
    assert updated.updated_by == 9
    assert updated.updated_at >= row.updated_at


def test_update_can_clear_an_optional_field(repo):
    row = repo.create(ACME, _entry('surgery', 'Bypass', surgeon='Dr. Grey'), actor_id=1)
    updated = repo.update(ACME, row.id, {'surgeon': None}, actor_id=1)
    assert updated.surgeon is None


def test_update_rejects_fields_of_another_category(repo):
    row = repo.create(ACME, _entry('condition', 'Gout'), actor_id=1)
    with pytest.raises(ValidationFailed) as exc:
        repo.update(ACME, row.id, {'reaction': 'rash'}, actor_id=1)
    assert exc.value.details['fields'] == ['reaction']
    assert repo.get_by_id(ACME, row.id).reaction is None


def test_update_missing_and_empty_patch(repo):
    assert repo.update(ACME, 999, {'notes': 'x'}, actor_id=1) is None

    row = repo.create(ACME, _entry('condition', 'Gout'), actor_id=1)
    same = repo.update(ACME, row.id, {}, actor_id=4)
    assert same.updated_by is None
    assert same.updated_at == row.updated_at


def test_delete(repo):
    row = repo.create(ACME, _entry('condition', 'Gout'), actor_id=1)
    assert repo.delete(ACME, row.id) is True
    assert repo.delete(ACME, row.id) is False
    assert repo.get_by_id(ACME, row.id) is None


def test_critical_allergies(repo):
    mild = repo.create(ACME, _entry('allergy', 'Shellfish', is_critical=True, severity='mild'), actor_id=1)
    severe = repo.create(ACME, _entry('allergy', 'Penicillin', is_critical=True, severity='severe'), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Pollen', is_critical=False, severity='severe'), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Latex', is_critical=True, status='resolved'), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Peanut', is_critical=True, patient_id=2), actor_id=1)

    rows = repo.get_critical_allergies(ACME, 1)

    assert [r.id for r in rows] == [severe.id, mild.id]


def test_summary(repo):
    repo.create(ACME, _entry('condition', 'Asthma'), actor_id=1)
    repo.create(ACME, _entry('condition', 'Measles', status='resolved'), actor_id=1)
    repo.create(ACME, _entry('surgery', 'Tonsillectomy'), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Penicillin', is_critical=True), actor_id=1)
    repo.create(ACME, _entry('allergy', 'Dust'), actor_id=1)
    repo.create(ACME, _entry('family_history', 'Diabetes', relationship='mother'), actor_id=1)
    for i in range(6):
        repo.create(ACME, _entry('condition', f'Noise {i}', patient_id=2), actor_id=1)

    summary = repo.get_summary(ACME, 1)

    assert summary['total_conditions'] == 2
    assert summary['active_conditions'] == 1
    assert summary['total_surgeries'] == 1
    assert summary['total_allergies'] == 2
    assert summary['critical_allergies'] == 1
    assert summary['total_family_history'] == 1
    assert len(summary['recent_entries']) == 6
    assert all(r.patient_id == 1 for r in summary['recent_entries'])


def test_summary_of_unknown_patient_is_all_zero(repo):
    summary = repo.get_summary(ACME, 404)
    assert summary['total_conditions'] == 0
    assert summary['recent_entries'] == []


@pytest.mark.parametrize(
    'category, flag',
    [('allergy', 'is_critical'), ('family_history', 'is_genetic')],
)
def test_boolean_flags_cannot_be_cleared(repo, category, flag):
    row = repo.create(ACME, _entry(category, 'Flagged', **{flag: True}), actor_id=1)

    with pytest.raises(ValidationFailed):
        repo.update(ACME, row.id, {flag: None}, actor_id=1)

    assert getattr(repo.get_by_id(ACME, row.id), flag) is True
    assert getattr(repo.update(ACME, row.id, {flag: False}, actor_id=1), flag) is False
