"""
Financial calculators.

Every calculator takes plain numbers and returns a dict of results, or None
when the inputs are rejected. Rates are annual percentages (6.5 means 6.5%).
Results never contain NaN or Infinity: zero rates fall back to the linear
form of each formula.
"""

import math
from typing import Any, Dict, List, Optional

from utils.errors import ValidationError


MONTHS_PER_YEAR = 12

# Planning horizon for retirement drawdown
LIFE_EXPECTANCY = 85
SAFE_WITHDRAWAL_RATE = 0.04

CURRENCIES = {
    "USD": {"name": "US Dollar", "symbol": "$", "rate": 1.0000},
    "EUR": {"name": "Euro", "symbol": "€", "rate": 0.9234},
    "GBP": {"name": "British Pound", "symbol": "£", "rate": 0.7834},
    "JPY": {"name": "Japanese Yen", "symbol": "¥", "rate": 149.85},
    "CAD": {"name": "Canadian Dollar", "symbol": "C$", "rate": 1.3645},
    "AUD": {"name": "Australian Dollar", "symbol": "A$", "rate": 1.5234},
    "CHF": {"name": "Swiss Franc", "symbol": "CHF", "rate": 0.8734},
    "CNY": {"name": "Chinese Yuan", "symbol": "¥", "rate": 7.2456},
    "INR": {"name": "Indian Rupee", "symbol": "₹", "rate": 83.1234},
    "BRL": {"name": "Brazilian Real", "symbol": "R$", "rate": 4.9876},
    "RUB": {"name": "Russian Ruble", "symbol": "₽", "rate": 91.2345},
    "KRW": {"name": "South Korean Won", "symbol": "₩", "rate": 1321.45},
    "SGD": {"name": "Singapore Dollar", "symbol": "S$", "rate": 1.3456},
    "HKD": {"name": "Hong Kong Dollar", "symbol": "HK$", "rate": 7.8234},
    "SEK": {"name": "Swedish Krona", "symbol": "kr", "rate": 10.9876},
}

INCOME_SOURCES = ("salary", "freelance", "investment", "other")

# Recommended share of income, in percent
EXPENSE_CATEGORIES = [
    {"key": "housing", "label": "Housing (Rent/Mortgage)", "recommended": 25},
    {"key": "transportation", "label": "Transportation", "recommended": 15},
    {"key": "food", "label": "Food & Groceries", "recommended": 10},
    {"key": "utilities", "label": "Utilities", "recommended": 5},
    {"key": "insurance", "label": "Insurance", "recommended": 5},
    {"key": "healthcare", "label": "Healthcare", "recommended": 5},
    {"key": "entertainment", "label": "Entertainment", "recommended": 5},
    {"key": "shopping", "label": "Shopping & Clothing", "recommended": 5},
    {"key": "personal", "label": "Personal Care", "recommended": 3},
    {"key": "debt", "label": "Debt Payments", "recommended": 5},
    {"key": "savings", "label": "Savings & Investments", "recommended": 20},
    {"key": "other", "label": "Other Expenses", "recommended": 2},
]

TIP_PRESETS = [
    {"label": "10%", "value": 10, "desc": "Poor Service"},
    {"label": "15%", "value": 15, "desc": "Fair Service"},
    {"label": "18%", "value": 18, "desc": "Good Service"},
    {"label": "20%", "value": 20, "desc": "Great Service"},
    {"label": "22%", "value": 22, "desc": "Excellent Service"},
    {"label": "25%", "value": 25, "desc": "Outstanding Service"},
]


# ------------------------------------------------------------------
# Shared formulas
# ------------------------------------------------------------------

def _monthly_rate(annual_rate: float) -> float:
    return annual_rate / 100 / MONTHS_PER_YEAR


def _compound_gain(rate: float, periods: float) -> float:
    """(1 + rate)^periods - 1, without losing tiny rates to rounding."""
    return math.expm1(periods * math.log1p(rate))


def monthly_payment(principal: float, annual_rate: float, months: int) -> float:
    """
    Annuity payment M = P * r(1+r)^n / ((1+r)^n - 1).
    """
    if months <= 0:
        raise ValidationError("Loan term must be positive.")

    r = _monthly_rate(annual_rate)
    gain = _compound_gain(r, months) if r else 0.0
    if gain == 0:
        return principal / months

    return principal * (r * (1 + gain)) / gain


def annuity_future_value(payment: float, rate: float, periods: float) -> float:
    """
    Future value of `periods` end-of-period payments at periodic `rate`.
    """
    if periods <= 0:
        return 0.0
    gain = _compound_gain(rate, periods) if rate else 0.0
    if gain == 0:
        return payment * periods
    return payment * (gain / rate)


def amortization_schedule(
    principal: float,
    annual_rate: float,
    months: int,
    extra_payment: float = 0.0,
    limit: Optional[int] = None,
) -> List[Dict[str, float]]:
    """
    Month-by-month amortization until the balance is paid off.

    Extra principal is applied from the second month on. `limit` caps
    the number of rows returned, not the number of months simulated.
    """
    payment = monthly_payment(principal, annual_rate, months)
    r = _monthly_rate(annual_rate)

    rows: List[Dict[str, float]] = []
    balance = principal

    for month in range(1, months + 1):
        if balance <= 0:
            break

        interest = balance * r
        principal_part = payment - interest
        extra = extra_payment if (extra_payment > 0 and month > 1) else 0.0
        principal_part += extra

        if principal_part > balance:
            principal_part = balance

        balance -= principal_part

        if limit is None or len(rows) < limit:
            rows.append(
                {
                    "month": month,
                    "payment": payment + extra,
                    "principal": principal_part,
                    "interest": interest,
                    "balance": max(0.0, balance),
                }
            )

    return rows


def format_currency(amount: float, symbol: str = "$", decimals: int = 2) -> str:
    return f"{symbol}{amount:,.{decimals}f}"


# ------------------------------------------------------------------
# Loans
# ------------------------------------------------------------------

def calculate_mortgage(
    home_price: float,
    down_payment: float,
    interest_rate: float,
    loan_term: float = 30,
    property_tax: float = 0,
    home_insurance: float = 0,
    pmi: float = 0,
    hoa_fees: float = 0,
) -> Optional[Dict[str, float]]:
    """
    Monthly principal and interest plus escrow-style costs.

    Tax, insurance, PMI and HOA are annual amounts.
    """
    if home_price <= 0 or down_payment < 0 or interest_rate <= 0 or loan_term <= 0:
        return None

    loan_amount = home_price - down_payment
    if loan_amount <= 0:
        return None

    total_payments = int(round(loan_term * MONTHS_PER_YEAR))
    monthly_pi = monthly_payment(loan_amount, interest_rate, total_payments)

    monthly_tax = property_tax / MONTHS_PER_YEAR
    monthly_insurance = home_insurance / MONTHS_PER_YEAR
    monthly_pmi = pmi / MONTHS_PER_YEAR
    monthly_hoa = hoa_fees / MONTHS_PER_YEAR

    total_monthly = monthly_pi + monthly_tax + monthly_insurance + monthly_pmi + monthly_hoa
    total_cost = (
        monthly_pi * total_payments
        + (property_tax + home_insurance + pmi + hoa_fees) * loan_term
    )
    total_interest = monthly_pi * total_payments - loan_amount

    return {
        "loan_amount": loan_amount,
        "monthly_pi": monthly_pi,
        "monthly_tax": monthly_tax,
        "monthly_insurance": monthly_insurance,
        "monthly_pmi": monthly_pmi,
        "monthly_hoa": monthly_hoa,
        "total_monthly_payment": total_monthly,
        "total_cost": total_cost,
        "total_interest": total_interest,
        "down_payment_percent": down_payment / home_price * 100,
        "loan_to_value": loan_amount / home_price * 100,
    }


def calculate_loan(
    loan_amount: float,
    interest_rate: float,
    loan_term: float,
    term_unit: str = "years",
    extra_payment: float = 0,
) -> Optional[Dict[str, Any]]:
    if loan_amount <= 0 or interest_rate <= 0 or loan_term <= 0:
        return None

    total_months = int(round(loan_term * MONTHS_PER_YEAR if term_unit == "years" else loan_term))
    if total_months <= 0:
        return None

    payment = monthly_payment(loan_amount, interest_rate, total_months)
    total_payment = payment * total_months
    total_interest = total_payment - loan_amount

    full = amortization_schedule(loan_amount, interest_rate, total_months, extra_payment)
    interest_with_extra = sum(row["interest"] for row in full)
    months_to_pay_off = full[-1]["month"] if full else 0

    has_extra = extra_payment > 0

    return {
        "monthly_payment": payment,
        "total_payment": total_payment,
        "total_interest": total_interest,
        "total_interest_with_extra": interest_with_extra,
        "interest_savings": total_interest - interest_with_extra if has_extra else 0.0,
        "time_savings": total_months - months_to_pay_off if has_extra else 0,
        "months_to_pay_off": months_to_pay_off,
        "schedule": full[:12],
    }


def calculate_emi(
    loan_amount: float,
    interest_rate: float,
    loan_tenure: float,
    tenure_type: str = "years",
) -> Optional[Dict[str, Any]]:
    if not loan_amount or not interest_rate or not loan_tenure:
        return None
    if loan_amount < 0 or interest_rate < 0 or loan_tenure < 0:
        return None

    total_months = int(loan_tenure) * MONTHS_PER_YEAR if tenure_type == "years" else int(loan_tenure)
    if total_months <= 0:
        return None

    emi = monthly_payment(loan_amount, interest_rate, total_months)
    total_amount = emi * total_months

    breakdown = amortization_schedule(
        loan_amount, interest_rate, total_months, limit=min(12, total_months)
    )

    return {
        "emi": round(emi),
        "total_amount": round(total_amount),
        "total_interest": round(total_amount - loan_amount),
        "monthly_breakdown": breakdown,
    }


# ------------------------------------------------------------------
# Growth projections
# ------------------------------------------------------------------

def calculate_retirement(
    current_age: int,
    current_income: float,
    retirement_age: int = 65,
    current_savings: float = 0,
    monthly_savings: float = 0,
    expected_return: float = 7,
    inflation_rate: float = 3,
    income_needed: float = 80,
    social_security: float = 0,
    pension: float = 0,
) -> Optional[Dict[str, float]]:
    """
    Project savings to retirement and compare against an inflated income need.

    The savings target follows the 4% withdrawal rule. An annuity-based
    target over the years until LIFE_EXPECTANCY is reported alongside it.
    """
    if current_age <= 0 or retirement_age <= current_age or current_income <= 0:
        return None

    years_to_retirement = retirement_age - current_age
    years_in_retirement = max(0, LIFE_EXPECTANCY - retirement_age)
    months_to_retirement = years_to_retirement * MONTHS_PER_YEAR

    fv_current = current_savings * math.pow(1 + expected_return / 100, years_to_retirement)

    monthly_rate = _monthly_rate(expected_return)
    fv_monthly = 0.0
    if monthly_savings > 0:
        fv_monthly = annuity_future_value(monthly_savings, monthly_rate, months_to_retirement)

    total_savings = fv_current + fv_monthly

    inflation_factor = math.pow(1 + inflation_rate / 100, years_to_retirement)
    annual_income_needed = current_income * income_needed / 100 * inflation_factor
    other_income = (social_security + pension) * inflation_factor

    income_gap = max(0.0, annual_income_needed - other_income)
    required_savings = income_gap / SAFE_WITHDRAWAL_RATE

    real_rate = max(expected_return - inflation_rate, 1) / 100
    required_annuity = income_gap * (
        (1 - math.pow(1 + real_rate, -years_in_retirement)) / real_rate
    )

    shortfall = max(0.0, required_savings - total_savings)
    additional_monthly = 0.0
    if shortfall > 0:
        growth = annuity_future_value(1.0, monthly_rate, months_to_retirement)
        additional_monthly = shortfall / growth if growth else shortfall

    if annual_income_needed > 0:
        replacement_ratio = (
            (total_savings * SAFE_WITHDRAWAL_RATE + other_income) / annual_income_needed * 100
        )
    else:
        replacement_ratio = 0.0

    return {
        "years_to_retirement": years_to_retirement,
        "total_retirement_savings": total_savings,
        "annual_income_needed": annual_income_needed,
        "other_annual_income": other_income,
        "income_gap": income_gap,
        "required_savings": required_savings,
        "required_savings_annuity": required_annuity,
        "savings_shortfall": shortfall,
        "additional_monthly_savings_needed": additional_monthly,
        "replacement_ratio": replacement_ratio,
        "future_value_current_savings": fv_current,
        "future_value_monthly_savings": fv_monthly,
        "monthly_contribution_total": monthly_savings * months_to_retirement,
    }


def calculate_compound_interest(
    principal: float,
    interest_rate: float,
    years: int,
    compounding_frequency: int = 1,
    monthly_deposit: float = 0,
) -> Optional[Dict[str, Any]]:
    """
    A = P(1 + r/n)^(nt), plus the future value of monthly deposits.
    """
    if principal < 0 or interest_rate < 0 or years <= 0 or compounding_frequency <= 0:
        return None

    r = interest_rate / 100
    n = compounding_frequency
    monthly_rate = r / MONTHS_PER_YEAR

    def amount_after(t: float) -> float:
        amount = principal * math.pow(1 + r / n, n * t)
        if monthly_deposit > 0:
            amount += annuity_future_value(monthly_deposit, monthly_rate, t * MONTHS_PER_YEAR)
        return amount

    final_amount = amount_after(years)
    total_principal = principal + monthly_deposit * MONTHS_PER_YEAR * years

    yearly = []
    for year in range(1, int(years) + 1):
        total = amount_after(year)
        invested = principal + monthly_deposit * MONTHS_PER_YEAR * year
        yearly.append(
            {"year": year, "principal": invested, "interest": total - invested, "total": total}
        )

    return {
        "final_amount": final_amount,
        "total_principal": total_principal,
        "compound_interest": final_amount - total_principal,
        "yearly_breakdown": yearly,
    }


def calculate_sip(
    monthly_investment: float,
    expected_return: float,
    years: int,
) -> Optional[Dict[str, Any]]:
    """
    SIP future value, paid at the start of each month:
    FV = PMT * [((1 + r)^n - 1) / r] * (1 + r)
    """
    if monthly_investment <= 0 or expected_return < 0 or years <= 0:
        return None

    r = _monthly_rate(expected_return)

    def value_after(months: int) -> float:
        return annuity_future_value(monthly_investment, r, months) * (1 + r)

    total_months = int(years) * MONTHS_PER_YEAR
    future_value = value_after(total_months)
    invested = monthly_investment * total_months

    yearly = []
    for year in range(1, int(years) + 1):
        months = year * MONTHS_PER_YEAR
        fv = value_after(months)
        put_in = monthly_investment * months
        yearly.append({"year": year, "invested": put_in, "returns": fv - put_in, "total": fv})

    return {
        "future_value": future_value,
        "total_invested": invested,
        "total_returns": future_value - invested,
        "yearly_breakdown": yearly,
    }


def calculate_investment_return(
    initial_amount: float,
    annual_return: float,
    period: float,
    period_unit: str = "years",
    monthly_contribution: float = 0,
    dividend_yield: float = 0,
    reinvest_dividends: bool = True,
    tax_rate: float = 0,
    inflation_rate: float = 3,
) -> Optional[Dict[str, Any]]:
    if initial_amount <= 0 or annual_return <= 0 or period <= 0:
        return None

    total_months = int(round(period * MONTHS_PER_YEAR if period_unit == "years" else period))
    if total_months <= 0:
        return None

    growth_rate = _monthly_rate(annual_return)
    dividend_rate = _monthly_rate(dividend_yield)

    value = initial_amount
    contributions = initial_amount
    dividends = 0.0
    yearly = []

    for month in range(1, total_months + 1):
        if monthly_contribution > 0:
            value += monthly_contribution
            contributions += monthly_contribution

        value += value * growth_rate

        dividend = value * dividend_rate
        dividends += dividend
        if reinvest_dividends:
            value += dividend

        if month % MONTHS_PER_YEAR == 0:
            yearly.append(
                {
                    "year": month // MONTHS_PER_YEAR,
                    "value": value,
                    "contributions": contributions,
                    "growth": value - contributions,
                    "dividends": dividends,
                }
            )

    total_value = value if reinvest_dividends else value + dividends
    absolute_return = total_value - contributions
    years = total_months / MONTHS_PER_YEAR

    tax_owed = absolute_return * tax_rate / 100 if tax_rate > 0 else 0.0

    return {
        "final_value": total_value,
        "total_contributions": contributions,
        "total_return": absolute_return,
        "total_dividends": dividends,
        "percentage_return": absolute_return / contributions * 100,
        "annualized_return": (math.pow(total_value / contributions, 1 / years) - 1) * 100,
        "tax_owed": tax_owed,
        "after_tax_value": total_value - tax_owed,
        "inflation_adjusted_value": total_value / math.pow(1 + inflation_rate / 100, years),
        "yearly_breakdown": yearly[-5:],
    }


# ------------------------------------------------------------------
# Everyday money
# ------------------------------------------------------------------

def calculate_tip(
    bill_amount: float,
    tip_percentage: float = 18,
    number_of_people: int = 1,
) -> Optional[Dict[str, float]]:
    if bill_amount < 0 or tip_percentage < 0:
        return None

    people = max(1, int(number_of_people or 1))
    tip_amount = bill_amount * tip_percentage / 100
    total = bill_amount + tip_amount

    return {
        "tip_amount": tip_amount,
        "total_amount": total,
        "per_person_bill": bill_amount / people,
        "per_person_tip": tip_amount / people,
        "per_person_total": total / people,
    }


def _expense_status(actual: float, recommended: float) -> str:
    if actual <= recommended:
        return "good"
    if actual <= recommended * 1.2:
        return "warning"
    return "over"


def calculate_budget(income: Dict[str, float], expenses: Dict[str, float]) -> Dict[str, Any]:
    total_income = sum(v for v in income.values() if v)
    total_expenses = sum(v for v in expenses.values() if v)

    def share(amount: float) -> float:
        return amount / total_income * 100 if total_income > 0 else 0.0

    categories = []
    for cat in EXPENSE_CATEGORIES:
        amount = expenses.get(cat["key"]) or 0.0
        pct = share(amount)
        categories.append(
            {
                "key": cat["key"],
                "label": cat["label"],
                "amount": amount,
                "percentage": pct,
                "recommended": cat["recommended"],
                "status": _expense_status(pct, cat["recommended"]),
            }
        )

    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "remaining_money": total_income - total_expenses,
        "savings_rate": share(expenses.get("savings") or 0.0),
        "categories": categories,
    }


def convert_currency(amount: Any, from_currency: str, to_currency: str) -> Optional[Dict[str, Any]]:
    """
    Convert through USD using the static rate table.
    """
    src = (from_currency or "").upper()
    dst = (to_currency or "").upper()

    for code in (src, dst):
        if code not in CURRENCIES:
            raise ValidationError(f"Unsupported currency: {code or '(empty)'}")

    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None

    from_rate = CURRENCIES[src]["rate"]
    to_rate = CURRENCIES[dst]["rate"]
    converted = value / from_rate * to_rate

    return {
        "amount": value,
        "from": src,
        "to": dst,
        "converted": converted,
        "rate": to_rate / from_rate,
        "formatted": format_currency(converted, CURRENCIES[dst]["symbol"]),
    }
