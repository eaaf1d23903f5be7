from __future__ import annotations

from enum import Enum


class ScamCategory(str, Enum):
    DEBT_COLLECTION = "debt-collection"
    UTILITIES = "utilities"
    MONEY_SCAMS = "money-scams"
    TECH_SUPPORT = "tech-support"
    FAKE_PRIZES = "fake-prizes"
    IRS_TAX = "irs-tax"
    CHARITY = "charity"
    INSURANCE = "insurance"
    CREDIT_CARD = "credit-card"
    LOAN_OFFERS = "loan-offers"
    INVESTMENT = "investment"
    ROMANCE = "romance"
    PHISHING = "phishing"
    ROBOCALLS = "robocalls"
    POLITICAL = "political"
    SURVEY = "survey"
    VACATION = "vacation"
    HEALTH_MEDICAL = "health-medical"
    EMPLOYMENT = "employment"
    BUSINESS_OPPORTUNITY = "business-opportunity"


class CallType(str, Enum):
    LIVE = "live"
    ROBOCALL = "robocall"
    VOICEMAIL = "voicemail"
    TEXT = "text"


class Frequency(str, Enum):
    ONCE = "once"
    FEW_TIMES = "few-times"
    DAILY = "daily"
    MULTIPLE_DAILY = "multiple-daily"


CATEGORY_LABELS: dict[ScamCategory, str] = {
    ScamCategory.DEBT_COLLECTION: "Debt Collection",
    ScamCategory.UTILITIES: "Utilities",
    ScamCategory.MONEY_SCAMS: "Money Scams",
    ScamCategory.TECH_SUPPORT: "Tech Support",
    ScamCategory.FAKE_PRIZES: "Fake Prizes/Lottery",
    ScamCategory.IRS_TAX: "IRS/Tax Scams",
    ScamCategory.CHARITY: "Charity Scams",
    ScamCategory.INSURANCE: "Insurance",
    ScamCategory.CREDIT_CARD: "Credit Card Offers",
    ScamCategory.LOAN_OFFERS: "Loan Offers",
    ScamCategory.INVESTMENT: "Investment Scams",
    ScamCategory.ROMANCE: "Romance Scams",
    ScamCategory.PHISHING: "Phishing",
    ScamCategory.ROBOCALLS: "Robocalls",
    ScamCategory.POLITICAL: "Political Calls",
    ScamCategory.SURVEY: "Survey Scams",
    ScamCategory.VACATION: "Vacation/Timeshare",
    ScamCategory.HEALTH_MEDICAL: "Health/Medical",
    ScamCategory.EMPLOYMENT: "Employment Scams",
    ScamCategory.BUSINESS_OPPORTUNITY: "Business Opportunity Scams",
}

CALL_TYPE_LABELS: dict[CallType, str] = {
    CallType.LIVE: "Live Person",
    CallType.ROBOCALL: "Robocall",
    CallType.VOICEMAIL: "Left Voicemail",
    CallType.TEXT: "Text Message",
}

FREQUENCY_LABELS: dict[Frequency, str] = {
    Frequency.ONCE: "Called Once",
    Frequency.FEW_TIMES: "Few Times",
    Frequency.DAILY: "Daily",
    Frequency.MULTIPLE_DAILY: "Multiple Times Daily",
}


def as_options(labels: dict[Enum, str]) -> list[dict[str, str]]:
    return [{"value": member.value, "label": label} for member, label in labels.items()]
