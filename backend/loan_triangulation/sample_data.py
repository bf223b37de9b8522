"""
Sample closing package used for previews and demos before any upload.

Raw text keeps the visual layout of the scanned pages (spaces used for
alignment). The values deliberately conflict: page 2 carries a mistyped
loan number, page 1 an OCR-damaged address, page 3 a reordered name.
"""
from typing import Dict, List

from loan_triangulation.services.triangulation import DocumentLabel, Page

CANDIDATE_LABELS: List[str] = [
    DocumentLabel.CLOSING_DISCLOSURE.value,
    DocumentLabel.RATE_NOTE.value,
    DocumentLabel.RIDER.value,
    DocumentLabel.TAX_RECORD.value,
    DocumentLabel.AFFIDAVIT.value,
]

EXTRACTION_SCHEMA: Dict[str, str] = {
    'borrower_name': 'string',
    'property_address': 'string',
    'loan_number': 'string',
}

_ADDRESS = "604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139"
_BORROWER = "Alya Renard-Van Mercer"
_LOAN = "20414784"


def _fields(borrower_name=None, property_address=None, loan_number=None) -> Dict[str, str]:
    return {
        'borrower_name': borrower_name,
        'property_address': property_address,
        'loan_number': loan_number,
    }


SAMPLE_PAGES: List[Page] = [
    Page(
        page_number=1,
        raw_text="""TAX RECORD INFORMATION SHEET

REFINANCE [ ]Yes [ x ] No
LOAN # 20414784

BORROWER(S) NAME: Alya Renard-Van Mercer

PROPERTY ADDRESS: 604N C restview Hill Dr, Unit 1144, Las Vegas, NV 89139""",
        predicted_label=DocumentLabel.TAX_RECORD.value,
        confidence=0.98,
        extracted_fields=_fields(
            _BORROWER,
            "604N C restview Hill Dr, Unit 1144, Las Vegas, NV 89139",
            _LOAN,
        ),
    ),
    Page(
        page_number=2,
        raw_text="""LOAN #: 20814794

TYPE OF TAX                  LAST AMOUNT PAID
CURRENT TAXES PAID THRU DATE
NEXT AMOUNT DUE

SETTLEMENT AGENT
ICE Mortgage Technology, Inc.                          Page 2 of 2""",
        predicted_label=DocumentLabel.TAX_RECORD.value,
        confidence=0.96,
        extracted_fields=_fields(loan_number="20814794"),
    ),
    Page(
        page_number=3,
        raw_text="""SIGNATURE/NAME AFFIDAVIT

RE: LOAN NUMBER
20414784

PROPERTY ADDRESS
604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139

BEFORE ME, the undersigned authority, a Notary Public in and for said County and State, on this day
personally appeared,
Renard-Van Mercer, Alya""",
        predicted_label=DocumentLabel.AFFIDAVIT.value,
        confidence=0.95,
        extracted_fields=_fields("Renard-Van Mercer, Alya", _ADDRESS, _LOAN),
    ),
    Page(
        page_number=4,
        raw_text="""LOAN #: 20414784
CONDOMINIUM RIDER

THIS CONDOMINIUM RIDER is made this 26th day of March, 2024
and is incorporated into and amends and supplements the Mortgage...

The Property includes a unit in... located at:
604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139

The Property includes a unit in, together with an undivided interest...""",
        predicted_label=DocumentLabel.RIDER.value,
        confidence=0.99,
        extracted_fields=_fields(property_address=_ADDRESS, loan_number=_LOAN),
    ),
    Page(
        page_number=5,
        raw_text="""LOAN #: 20414784

B. Property Insurance. So long as the Owners Association maintains...
   with a generally accepted insurance carrier...

C. Public Liability Insurance. Borrower will take such actions...

D. Condemnation. The proceeds of any award or claim...""",
        predicted_label=DocumentLabel.RIDER.value,
        confidence=0.92,
        extracted_fields=_fields(loan_number=_LOAN),
    ),
    Page(
        page_number=6,
        raw_text="""LOAN #: 20414784

F. Remedies. If Borrower does not pay condominium dues...

BY SIGNING BELOW, Borrower accepts and agrees to the terms...

Alya Renard-Van Mercer                               (Seal)""",
        predicted_label=DocumentLabel.RIDER.value,
        confidence=0.98,
        extracted_fields=_fields(borrower_name=_BORROWER, loan_number=_LOAN),
    ),
    Page(
        page_number=7,
        raw_text="""NOTE
March 26, 2024                                         Las Vegas, NV
[Note Date]                                            [City] [State]

604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139
[Property Address]

1. BORROWER'S PROMISE TO PAY
LOAN #: 20414784

In return for a loan in the amount of U.S. $392,000.00...
I have received from Mariton Lending Group, LLC""",
        predicted_label=DocumentLabel.RATE_NOTE.value,
        confidence=0.99,
        extracted_fields=_fields(property_address=_ADDRESS, loan_number=_LOAN),
    ),
    Page(
        page_number=8,
        raw_text="""LOAN #: 20414784

5. LOAN CHARGES
   If applicable law sets maximum loan charges...

6. BORROWER'S FAILURE TO PAY AS REQUIRED
   (A) Late Charges for Overdue Payments
   The amount of the charge will be 5.000 % of my overdue...""",
        predicted_label=DocumentLabel.RATE_NOTE.value,
        confidence=0.94,
        extracted_fields=_fields(loan_number=_LOAN),
    ),
    Page(
        page_number=9,
        raw_text="""LOAN #: 20414784

PAY TO THE ORDER OF:
WITHOUT RECOURSE
Mariton Lending Group, LLC, a Florida Limited Liability Company

BY: ______________________
TITLE: __________________""",
        predicted_label=DocumentLabel.RATE_NOTE.value,
        confidence=0.90,
        extracted_fields=_fields(loan_number=_LOAN),
    ),
    Page(
        page_number=10,
        raw_text="""LOAN #: 20414784

10. UNIFORM SECURED NOTE
    This Note is a uniform instrument with limited variations...

WITNESS THE HAND(S) AND SEAL(S) OF THE UNDERSIGNED.

Alya Renard-Van Mercer                               (Seal)""",
        predicted_label=DocumentLabel.RATE_NOTE.value,
        confidence=0.97,
        extracted_fields=_fields(borrower_name=_BORROWER, loan_number=_LOAN),
    ),
    Page(
        page_number=11,
        raw_text="""Closing Disclosure

Closing Information                 Transaction Information
Date Issued   03/28/2024            Borrower    Alya Renard-Van Mercer
Closing Date  03/28/2024                        4124 Silvercrest Avenue,
                                                Las Vegas, NV 89129

File #        145002-011511
Property      604 N Crestview Hill Dr Unit 1144, Las Vegas, NV 89139

Sale Price    $490,000""",
        predicted_label=DocumentLabel.CLOSING_DISCLOSURE.value,
        confidence=0.99,
        extracted_fields=_fields(_BORROWER, _ADDRESS),
    ),
    Page(
        page_number=12,
        raw_text="""Closing Cost Details

Loan Costs
A. Origination Charges
01 % of Loan Amount (Points) to Mariton Lending Group, LLC
02 Processing Fees to Mariton Lending Group, LLC""",
        predicted_label=DocumentLabel.CLOSING_DISCLOSURE.value,
        confidence=0.91,
        extracted_fields=_fields(),
    ),
]
