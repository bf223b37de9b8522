import pytest

from loan_triangulation.sample_data import EXTRACTION_SCHEMA, SAMPLE_PAGES
from loan_triangulation.services.triangulation import (
    Confidence,
    DefaultTrustTable,
    DocumentLabel,
    OverrideTrustTable,
    Page,
    build_trust_table,
    display_label,
    fields_from_schema,
    label_display_name,
    normalize,
    parse_label,
    record_to_dict,
    resolve_field,
    triangulate,
)


def _page(number, label, **fields):
    return Page(page_number=number, predicted_label=label.value, extracted_fields=fields)


# ---------------------------------------------------------------------------
# normalizer
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw,expected", [
    ("  Alya Renard-Van Mercer ", "ALYA RENARD-VAN MERCER"),
    ("604 N Crestview Hill Dr., Unit 1144", "604 N CRESTVIEW HILL DR UNIT 1144"),
    ("20414784", "20414784"),
    ("", ""),
])
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_normalize_is_idempotent():
    value = " Renard-Van Mercer, Alya. "
    assert normalize(normalize(value)) == normalize(value)


# ---------------------------------------------------------------------------
# labels
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw", [
    "Lender - Rate Note",
    "  Lender - Rate Note  ",
    "RATE_NOTE",
    "DocumentLabel.RATE_NOTE",
    "rate-note",
])
def test_parse_label_accepts_known_forms(raw):
    assert parse_label(raw) is DocumentLabel.RATE_NOTE


@pytest.mark.parametrize("raw", [None, "", "Rate Note", "lender - rate note", "Deed of Trust"])
def test_parse_label_never_guesses(raw):
    assert parse_label(raw) is DocumentLabel.UNKNOWN


def test_label_display_names_are_localized():
    assert label_display_name(DocumentLabel.CLOSING_DISCLOSURE, 'en') == "Closing Disclosure"
    assert label_display_name(DocumentLabel.CLOSING_DISCLOSURE, 'tr') == "Kapanış Beyanı (CD)"
    assert label_display_name(DocumentLabel.RIDER, 'xx') == "Rider"


def test_display_label_keeps_unrecognized_text():
    assert display_label("DocumentLabel.DEED", 'en') == "DEED"
    assert display_label("DocumentLabel.TAX_RECORD", 'en') == "Tax Record"
    assert display_label("Unknown", 'tr') == "Bilinmeyen"
    assert display_label(None) is None


# ---------------------------------------------------------------------------
# trust table
# ---------------------------------------------------------------------------

def test_default_trust_table_scores():
    table = DefaultTrustTable()
    assert table.score('loan_number', DocumentLabel.RATE_NOTE) == 10
    assert table.score('borrower_name', DocumentLabel.CLOSING_DISCLOSURE) == 10
    assert table.score('property_address', DocumentLabel.RIDER) == 10
    assert table.score('borrower_name', DocumentLabel.TAX_RECORD) == 4


def test_unknown_label_always_scores_zero():
    assert DefaultTrustTable().score('loan_number', DocumentLabel.UNKNOWN) == 0
    assert DefaultTrustTable().score('escrow_amount', DocumentLabel.UNKNOWN) == 0
    override = OverrideTrustTable({'Unknown': 50})
    assert override.score('loan_number', DocumentLabel.UNKNOWN) == 0


def test_field_outside_table_gets_neutral_score():
    assert DefaultTrustTable().score('escrow_amount', DocumentLabel.RATE_NOTE) == 1


def test_override_weights_take_precedence_over_defaults():
    table = OverrideTrustTable({'Property - Tax Record Information Sheet': 20, 'rider': 2})
    assert table.score('loan_number', DocumentLabel.TAX_RECORD) == 20
    assert table.score('property_address', DocumentLabel.RIDER) == 2
    # labels the override does not list fall through to the default table
    assert table.score('loan_number', DocumentLabel.RATE_NOTE) == 10


def test_build_trust_table_selects_strategy():
    assert isinstance(build_trust_table(None), DefaultTrustTable)
    assert isinstance(build_trust_table({}), DefaultTrustTable)
    assert isinstance(build_trust_table({'rate-note': 3}), OverrideTrustTable)


def test_trust_table_to_dict_uses_slugs():
    data = DefaultTrustTable().to_dict()
    assert data['loan_number']['rate-note'] == 10
    assert data['property_address']['unknown'] == 0


# ---------------------------------------------------------------------------
# resolver
# ---------------------------------------------------------------------------

def test_highest_score_wins_and_keeps_original_text():
    pages = [
        _page(1, DocumentLabel.TAX_RECORD, borrower_name="alya renard-van mercer"),
        _page(2, DocumentLabel.CLOSING_DISCLOSURE, borrower_name="Alya Renard-Van Mercer"),
        _page(3, DocumentLabel.AFFIDAVIT, borrower_name="Renard-Van Mercer, Alya"),
    ]
    result = resolve_field('borrower_name', pages, language='en')

    assert result.final_value == "Alya Renard-Van Mercer"
    assert result.source == "Closing Disclosure"
    assert result.source_label is DocumentLabel.CLOSING_DISCLOSURE
    assert result.score == 10
    assert result.confidence is Confidence.HIGH
    assert result.agreeing_pages == [1, 2]


def test_no_candidates_is_a_normal_result():
    pages = [
        _page(1, DocumentLabel.RATE_NOTE, loan_number=None),
        _page(2, DocumentLabel.RIDER, loan_number="   "),
        Page(page_number=3, predicted_label=None, extracted_fields={'loan_number': "20414784"}),
        Page(page_number=4, predicted_label=DocumentLabel.RATE_NOTE.value, extracted_fields=None),
    ]
    result = resolve_field('loan_number', pages, language='tr')

    assert result.final_value is None
    assert result.source == "Yok"
    assert result.confidence is Confidence.NONE
    assert result.all_values == []


def test_tie_goes_to_first_page_in_enumeration_order():
    first = _page(8, DocumentLabel.RATE_NOTE, loan_number="20414784")
    second = _page(3, DocumentLabel.RATE_NOTE, loan_number="20814794")

    assert resolve_field('loan_number', [first, second]).final_value == "20414784"
    assert resolve_field('loan_number', [second, first]).final_value == "20814794"


def test_audit_trail_is_ordered_by_page_number():
    pages = [
        _page(9, DocumentLabel.RATE_NOTE, loan_number="20414784"),
        _page(2, DocumentLabel.TAX_RECORD, loan_number="20814794"),
        _page(5, DocumentLabel.RIDER, loan_number="20414784"),
    ]
    result = resolve_field('loan_number', pages, language='en')

    assert [entry.page_number for entry in result.all_values] == [2, 5, 9]
    assert [entry.score for entry in result.all_values] == [3, 5, 10]
    assert result.all_values[0].source == "Tax Record"


def test_medium_confidence_below_eight():
    pages = [_page(4, DocumentLabel.RIDER, loan_number="20414784")]
    result = resolve_field('loan_number', pages)

    assert result.score == 5
    assert result.confidence is Confidence.MEDIUM


def test_unknown_label_page_is_still_audited():
    pages = [
        Page(page_number=1, predicted_label="Deed of Trust", extracted_fields={'loan_number': "99"}),
        _page(2, DocumentLabel.TAX_RECORD, loan_number="20414784"),
    ]
    result = resolve_field('loan_number', pages, language='en')

    assert result.final_value == "20414784"
    assert result.all_values[0].label is DocumentLabel.UNKNOWN
    assert result.all_values[0].score == 0


def test_non_string_values_are_stringified():
    pages = [_page(1, DocumentLabel.RATE_NOTE, loan_number=20414784)]
    assert resolve_field('loan_number', pages).final_value == "20414784"


# ---------------------------------------------------------------------------
# engine
# ---------------------------------------------------------------------------

def test_triangulate_three_page_package(three_pages):
    record = triangulate(three_pages, language='en')

    assert list(record) == ['borrower_name', 'property_address', 'loan_number']

    loan = record['loan_number']
    assert loan.final_value == "20414784"
    assert loan.source == "Rate Note"
    assert loan.confidence is Confidence.HIGH
    assert [entry.page_number for entry in loan.all_values] == [1, 7]

    borrower = record['borrower_name']
    assert borrower.final_value == "Alya Renard-Van Mercer"
    assert borrower.source == "Closing Disclosure"

    address = record['property_address']
    assert address.final_value == "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139"
    assert address.score == 9


def test_triangulate_is_deterministic(three_pages):
    first = record_to_dict(triangulate(three_pages, language='en'))
    second = record_to_dict(triangulate(list(three_pages), language='en'))
    assert first == second


def test_label_weights_change_the_winner(three_pages):
    record = triangulate(three_pages, language='en', label_weights={'tax-record': 11})
    assert record['loan_number'].source == "Tax Record"
    assert record['loan_number'].score == 11


def test_fields_follow_schema_order():
    schema = {'loan_number': 'string', 'borrower_name': 'string'}
    assert fields_from_schema(schema) == ['loan_number', 'borrower_name']
    assert fields_from_schema(None) == ['borrower_name', 'property_address', 'loan_number']


def test_schema_field_outside_trust_table_uses_neutral_score():
    pages = [_page(1, DocumentLabel.CLOSING_DISCLOSURE, closing_date="03/28/2024")]
    record = triangulate(pages, language='en', fields=['closing_date'])

    assert record['closing_date'].final_value == "03/28/2024"
    assert record['closing_date'].score == 1
    assert record['closing_date'].confidence is Confidence.MEDIUM


def test_sample_package_resolves_conflicts():
    record = triangulate(SAMPLE_PAGES, language='en', fields=fields_from_schema(EXTRACTION_SCHEMA))

    assert record['loan_number'].final_value == "20414784"
    assert record['loan_number'].source == "Rate Note"
    # the mistyped loan number on page 2 stays in the audit trail
    assert "20814794" in [entry.value for entry in record['loan_number'].all_values]
    assert record['borrower_name'].final_value == "Alya Renard-Van Mercer"
    assert record['property_address'].source == "Rider"
    assert record['property_address'].final_value == "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139"


def test_decision_log_spells_out_the_affidavit():
    assert display_label("Title - Signature / Name Affidavit (Ack)", 'en') == "Signature Affidavit"
    assert display_label("DocumentLabel.AFFIDAVIT", 'tr') == "İmza Beyanı"
    assert label_display_name(DocumentLabel.AFFIDAVIT, 'en') == "Affidavit"
