import pytest

from loan_triangulation.services.triangulation import DocumentLabel, Page


@pytest.fixture()
def three_pages():
    """Tax record, rate note and closing disclosure pages with overlapping fields."""
    return [
        Page(
            page_number=1,
            raw_text="TAX RECORD INFORMATION SHEET",
            predicted_label=DocumentLabel.TAX_RECORD.value,
            confidence=0.98,
            extracted_fields={"loan_number": "20414784"},
        ),
        Page(
            page_number=7,
            raw_text="NOTE",
            predicted_label=DocumentLabel.RATE_NOTE.value,
            confidence=0.99,
            extracted_fields={
                "loan_number": "20414784",
                "property_address": "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139",
            },
        ),
        Page(
            page_number=11,
            raw_text="Closing Disclosure",
            predicted_label=DocumentLabel.CLOSING_DISCLOSURE.value,
            confidence=0.99,
            extracted_fields={"borrower_name": "Alya Renard-Van Mercer", "loan_number": None},
        ),
    ]


@pytest.fixture()
def pipeline_result():
    """Raw pipeline result payload without backend reconciliation."""
    return {
        "pages": [
            {"page_number": 1, "text": "TAX RECORD INFORMATION SHEET", "layout": []},
            {"page_number": 7, "text": "NOTE", "layout": []},
            {"page_number": 11, "text": "Closing Disclosure", "layout": []},
        ],
        "classifications": [
            {"page_number": 1, "label": DocumentLabel.TAX_RECORD.value, "confidence": 0.98},
            {"page_number": 7, "label": DocumentLabel.RATE_NOTE.value, "confidence": 0.99},
            {"page_number": 11, "label": DocumentLabel.CLOSING_DISCLOSURE.value, "confidence": 0.99},
        ],
        "extractions": [
            {"page_number": 1, "loan_number": "20414784"},
            {
                "page_number": 7,
                "loan_number": "20414784",
                "property_address": "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139",
            },
            {"page_number": 11, "borrower_name": "Alya Renard-Van Mercer", "loan_number": None},
        ],
        "doc_groups": [
            {"group_id": "g1", "label": DocumentLabel.RATE_NOTE.value, "pages": [7], "average_confidence": 0.99},
        ],
    }


@pytest.fixture()
def reconciled_result(pipeline_result):
    """Pipeline result that carries the backend's own decision."""
    result = dict(pipeline_result)
    result["ui"] = {
        "borrower_name": "ALYA RENARD-VAN MERCER",
        "property_address": "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139",
        "loan_number": "20414784",
        "field_confidence": {"loan_number": 0.97, "borrower_name": 0.64},
        "confidence": 0.5,
        "decision_log": {
            "loan_number": [
                "pg1: 20414784 (label=Property - Tax Record Information Sheet)",
                "pg7: 20414784 (label=DocumentLabel.RATE_NOTE)",
            ],
            "borrower_name": ["value=ALYA RENARD-VAN MERCER [score=0.64]"],
        },
    }
    return result
