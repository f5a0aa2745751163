"""
Property analysis calculator.

Works on the calculator inputs stored in ``PropertyAnalysis.data``:

- ``property``: purchasePrice, downPayment, closingCosts, loanTerm (years), interestRate (%)
- ``unitMix``: list of {count, currentRent, marketRent, vacancyRate (%)}
- ``income``: list of other monthly income {amount}
- ``expenses``: list of {name, amount, isPercentage, percentageOf}

Monthly figures are computed first and annualized. Ratios are returned as
fractions (a 6.5% cap rate is ``0.065``).
"""
from typing import Any, Dict, List, Optional

RENT_BASES = ('current', 'market')


def _number(value, default=0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _ratio(numerator: float, denominator: float) -> Optional[float]:
    if not denominator:
        return None
    return round(numerator / denominator, 4)


def _money(value: float) -> float:
    return round(value, 2)


def monthly_mortgage_payment(loan_amount: float, annual_rate_percent: float, term_years: float) -> float:
    """Fixed-rate amortized payment. Zero-interest loans are paid off linearly"""
    months = int(round(term_years * 12))
    if loan_amount <= 0 or months <= 0:
        return 0.0
    monthly_rate = annual_rate_percent / 100 / 12
    if monthly_rate <= 0:
        return loan_amount / months
    growth = (1 + monthly_rate) ** months
    return loan_amount * monthly_rate * growth / (growth - 1)


def rental_income(unit_mix: List[Dict[str, Any]], basis: str = 'current') -> Dict[str, float]:
    """Scheduled monthly rent and the vacancy loss for the chosen rent basis"""
    rent_key = 'marketRent' if basis == 'market' else 'currentRent'
    scheduled = 0.0
    vacancy = 0.0
    for unit in unit_mix or []:
        unit_rent = _number(unit.get(rent_key)) * _number(unit.get('count'))
        scheduled += unit_rent
        vacancy += unit_rent * _number(unit.get('vacancyRate')) / 100
    return {'scheduled': scheduled, 'vacancy': vacancy}


def expense_amount(expense: Dict[str, Any], rent: float, income: float, property_value: float) -> float:
    """Monthly amount of one expense line"""
    amount = _number(expense.get('amount'))
    if not (expense.get('isPercentage') or expense.get('isPercentge')):
        return amount
    basis = expense.get('percentageOf') or 'income'
    if basis == 'rent':
        return rent * amount / 100
    if basis == 'propertyValue':
        return property_value * amount / 100 / 12
    return income * amount / 100


def profit_and_loss(data: Dict[str, Any], basis: str = 'current') -> Dict[str, Any]:
    """Monthly P&L for one rent basis"""
    prop = data.get('property') or {}
    price = _number(prop.get('purchasePrice'))

    rent = rental_income(data.get('unitMix'), basis)
    other_income = sum(
        _number(item.get('amount'))
        for item in data.get('income') or []
        if not item.get('isCalculated')
    )
    effective_rent = rent['scheduled'] - rent['vacancy']
    total_income = effective_rent + other_income

    expenses = [
        {
            'name': expense.get('name') or '',
            'amount': _money(expense_amount(expense, effective_rent, total_income, price)),
        }
        for expense in data.get('expenses') or []
    ]
    total_expenses = sum(item['amount'] for item in expenses)

    loan_amount = max(0.0, price - _number(prop.get('downPayment')))
    mortgage = monthly_mortgage_payment(
        loan_amount, _number(prop.get('interestRate')), _number(prop.get('loanTerm'))
    )
    noi = total_income - total_expenses

    return {
        'rentalIncome': _money(rent['scheduled']),
        'vacancyLoss': _money(rent['vacancy']),
        'otherIncome': _money(other_income),
        'totalIncome': _money(total_income),
        'expenses': expenses,
        'totalExpenses': _money(total_expenses),
        'noi': _money(noi),
        'debtService': _money(mortgage),
        'cashFlow': _money(noi - mortgage),
    }


def calculate(data: Dict[str, Any], basis: str = 'current') -> Dict[str, Any]:
    """
    Full results block: key metrics plus monthly and annual breakdowns.

    The ``keyMetrics`` keys match the columns denormalized on
    ``PropertyAnalysis``.
    """
    if basis not in RENT_BASES:
        raise ValueError(f"Unknown rent basis: {basis}")

    prop = data.get('property') or {}
    price = _number(prop.get('purchasePrice'))
    pl = profit_and_loss(data, basis)

    annual_gross = pl['totalIncome'] * 12
    annual_expenses = pl['totalExpenses'] * 12
    annual_noi = pl['noi'] * 12
    annual_debt = pl['debtService'] * 12
    annual_cash_flow = annual_noi - annual_debt

    down_payment = _number(prop.get('downPayment'))
    if down_payment <= 0 and pl['debtService'] == 0:
        down_payment = price
    total_investment = down_payment + _number(prop.get('closingCosts')) + _number(prop.get('rehabCosts'))

    key_metrics = {
        'capRate': _ratio(annual_noi, price),
        'cashOnCashReturn': _ratio(annual_cash_flow, total_investment),
        'netOperatingIncome': _money(annual_noi),
        'grossRentMultiplier': _ratio(price, pl['rentalIncome'] * 12),
        'debtServiceCoverageRatio': _ratio(annual_noi, annual_debt),
        'totalInvestment': _money(total_investment),
        'annualCashFlow': _money(annual_cash_flow),
        'yearsToRecoup': _ratio(total_investment, annual_cash_flow) if annual_cash_flow > 0 else None,
    }

    return {
        'basis': basis,
        'keyMetrics': key_metrics,
        'monthlyBreakdown': {
            'grossIncome': pl['totalIncome'],
            'totalExpenses': pl['totalExpenses'],
            'netOperatingIncome': pl['noi'],
            'mortgagePayment': pl['debtService'],
            'cashFlow': pl['cashFlow'],
        },
        'annualBreakdown': {
            'grossIncome': _money(annual_gross),
            'totalExpenses': _money(annual_expenses),
            'netOperatingIncome': _money(annual_noi),
            'debtService': _money(annual_debt),
            'cashFlow': _money(annual_cash_flow),
        },
        'profitAndLoss': pl,
    }


def compare_rent_bases(data: Dict[str, Any]) -> Dict[str, Any]:
    """P&L on current rents next to the same property at market rents"""
    return {
        'current': profit_and_loss(data, 'current'),
        'market': profit_and_loss(data, 'market'),
    }
