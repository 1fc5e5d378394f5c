"""Static scheme catalog and guideline passages.

The catalog is compiled in and immutable for the lifetime of the
process. Guideline passages are keyed by scheme id and quoted into the
eligibility prompt so the model can cite page and section references.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from nitisetu.models.scheme import Scheme

# Used in the eligibility prompt when a scheme has no registered passage.
DEFAULT_GUIDELINE: Final[str] = "General agricultural rules."

SCHEME_CATALOG: Final[tuple[Scheme, ...]] = (
    Scheme(
        id="pm-kisan",
        name="PM-KISAN",
        description="Direct income support of ₹6,000 per year to all landholding farmers.",
        category="Income Support",
        benefit="₹6,000 per annum in 3 installments",
        required_documents=(
            "Aadhar Card (Mandatory)",
            "Land Holding Documents (Khatauni/7-12)",
            "Bank Account Details",
            "Citizenship Certificate",
        ),
        steps=(
            "Visit the official PM-KISAN portal or nearest CSC.",
            "Complete New Farmer Registration with Aadhar.",
            "Upload land records and bank details.",
            "Wait for verification by District/State Nodal Officer.",
        ),
    ),
    Scheme(
        id="pm-kusum",
        name="PM-KUSUM",
        description="Subsidies for solar pumps and grid-connected solar power plants.",
        category="Solar Energy",
        benefit="60% subsidy on solar pump installation",
        required_documents=(
            "Land Ownership Documents",
            "Identity Proof (Aadhar/Voter ID)",
            "Bank Passbook Copy",
            "Passport size Photograph",
            "Electricity Bill (for Component C)",
        ),
        steps=(
            "Submit online application via State Discom portal.",
            "Site survey by technical team.",
            "Payment of 10% farmer share after approval.",
            "Installation and commissioning of solar system.",
        ),
    ),
    Scheme(
        id="agri-infra",
        name="Agri-Infrastructure Fund",
        description="Post-harvest management infrastructure and community farming assets.",
        category="Infrastructure",
        benefit="Interest subvention of 3% per annum for 7 years",
        required_documents=(
            "Project Report (DPR)",
            "Land Records/Lease Agreement",
            "KYC Documents of Entity",
            "Income Tax Returns (Last 3 Years)",
            "Audited Balance Sheets",
        ),
        steps=(
            "Register on the AIF Portal as an applicant.",
            "Upload Detailed Project Report (DPR) and land documents.",
            "Submit application for bank loan through portal.",
            "Verification by PMU and loan sanction by bank.",
        ),
    ),
)

SCHEME_GUIDELINES: Final[Mapping[str, str]] = MappingProxyType({
    "pm-kisan": """\
1. Eligibility: All landholding farmers' families in the country are eligible.
2. Exclusion Criteria:
   - Institutional land holders.
   - Families where one or more members belong to:
     - Former/present holders of constitutional posts.
     - Former/present Ministers.
     - Former/present Mayors of Municipal Corporations.
     - Former/present Chairpersons of District Panchayats.
3. Proof: "Operational land holdings as per land records of the States/UTs." (Page 2, Section 2)""",
    "pm-kusum": """\
1. Eligibility: Individual farmers, groups of farmers, cooperatives, Panchayats, \
Farmer Producer Organizations (FPOs).
2. Requirement: Farmers should have sufficient land for solarization.
3. Subsidy: CFA of 30% from Central Govt, 30% from State Govt, 10% farmer share, 30% loan.
4. Proof: "Preference will be given to small and marginal farmers with landholding \
below 5 acres." (Page 12, Guidelines v2.1)""",
    "agri-infra": """\
1. Eligibility: Primary Agricultural Credit Societies (PACS), Marketing Cooperative \
Societies, FPOs, SHGs, Startups.
2. Benefit: Loans up to ₹2 Crores with 3% interest subvention.
3. Proof: "The project must be related to post-harvest management or community \
farming." (Page 5, Annexure A)""",
})


def get_scheme(scheme_id: str) -> Scheme | None:
    for scheme in SCHEME_CATALOG:
        if scheme.id == scheme_id:
            return scheme
    return None


def guideline_for(scheme_id: str, guidelines: Mapping[str, str] = SCHEME_GUIDELINES) -> str:
    return guidelines.get(scheme_id) or DEFAULT_GUIDELINE
