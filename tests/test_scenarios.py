from app.services.evaluator import evaluate


def test_business_grant_all_criteria_met():
    d = evaluate("business_grant", {"revenue": "5000000", "years": "3", "employees": "5", "sector": "Retail"})
    assert d.outcome == "Approved"
    assert d.key_factor == "All Criteria Met"
    assert d.counterfactuals == ()


def test_business_grant_revenue_over_cap():
    d = evaluate("business_grant", {"revenue": "12000000", "years": "3", "employees": "5", "sector": "Retail"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Annual Revenue"
    assert "₹1,20,00,000" in d.explanation and "₹1,00,00,000" in d.explanation
    assert d.clause.source.endswith("Section 4(b)(i)")


def test_business_grant_revenue_takes_precedence():
    # every other condition fails too: revenue still decides
    d = evaluate("business_grant", {"revenue": "20000000", "years": "0", "employees": "1", "sector": "Other"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Annual Revenue"
    assert [s.status for s in d.trace] == ["fail", "fail", "fail", "neutral", "fail"]
    assert d.counterfactuals[0] == "Annual revenue falls below ₹1,00,00,000."
    assert len(d.counterfactuals) == 4


def test_business_grant_years_then_employees():
    d = evaluate("business_grant", {"revenue": "500000", "years": "1", "employees": "1", "sector": "Retail"})
    assert d.key_factor == "Years in Operation"
    assert "in 1 year(s)" in d.guidance

    d = evaluate("business_grant", {"revenue": "500000", "years": "4", "employees": "2", "sector": "Retail"})
    assert d.key_factor == "Employee Count"


def test_business_grant_sector_is_soft():
    d = evaluate("business_grant", {"revenue": "500000", "years": "4", "employees": "9", "sector": "Technology"})
    assert d.outcome == "Review"
    assert d.key_factor == "Business Sector"
    assert "'Technology'" in d.explanation


def test_business_grant_boundaries():
    base = {"years": "3", "employees": "5", "sector": "Retail"}
    assert evaluate("business_grant", {**base, "revenue": "10000000"}).outcome == "Denied"
    d = evaluate("business_grant", {"revenue": "9999999", "years": "2", "employees": "3", "sector": "Retail"})
    assert d.outcome == "Approved"


def test_housing_low_score_stops_before_dti():
    d = evaluate("housing_loan", {"creditScore": "650", "income": "1200000", "debt": "15000"})
    assert d.outcome == "Denied"
    assert d.key_factor == "CIBIL Score"
    assert d.counterfactuals == ("Credit score improves to 700 or higher.",)


def test_housing_dti_over_limit():
    # 50000 / (1200000 / 12) * 100 = 50 %
    d = evaluate("housing_loan", {"creditScore": "750", "income": "1200000", "debt": "50000"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Debt-to-Income Ratio"
    assert "50.0%" in d.explanation
    assert "₹10,000" in d.guidance


def test_housing_boundaries():
    d = evaluate("housing_loan", {"creditScore": "700", "income": "1200000", "debt": "40000"})
    assert d.outcome == "Approved"
    assert d.key_factor == "Credit & DTI"
    assert d.explanation == (
        "Your CIBIL score of 700 is healthy, and your Debt-to-Income ratio of 40.0% "
        "is well within the safe lending limit of 40%."
    )


def test_student_loan_fees_over_collateral_free_limit():
    d = evaluate("student_loan", {"admission": "Yes", "fees": "900000", "parentIncome": "600000"})
    assert d.outcome == "Review"
    assert d.key_factor == "Loan Amount"
    assert d.rule_summary == "Collateral required for loans above ₹7.5 Lakhs."
    assert "₹9,00,000" in d.explanation and "₹7,50,000" in d.explanation


def test_student_loan_without_admission():
    d = evaluate("student_loan", {"admission": "No", "fees": "100000", "parentIncome": "100000"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Admission Status"
    assert d.rule_summary == "Requires confirmed admission."


def test_student_loan_interest_subsidy_keeps_approval():
    d = evaluate("student_loan", {"admission": "Yes", "fees": "750000", "parentIncome": "300000"})
    assert d.outcome == "Approved"
    assert d.key_factor == "Income Subsidy"
    assert d.resource.label.startswith("Central Sector Interest Subsidy Scheme")
    assert d.clause.source == "CSIS Scheme Guidelines, Para 3.2"


def test_student_loan_without_subsidy():
    d = evaluate("student_loan", {"admission": "Yes", "fees": "500000", "parentIncome": "450000"})
    assert d.outcome == "Approved"
    assert d.key_factor == "Admission & Limits"
    assert d.trace[2].status == "neutral"


def test_scholarship_approved():
    d = evaluate("scholarship", {"percentage": "85", "income": "250000"})
    assert d.outcome == "Approved"
    assert d.key_factor == "Merit & Means"
    assert d.explanation.startswith("Congratulations! With 85% marks")


def test_scholarship_boundaries():
    assert evaluate("scholarship", {"percentage": "80", "income": "250000"}).outcome == "Approved"
    d = evaluate("scholarship", {"percentage": "95", "income": "800000"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Income Threshold"
    d = evaluate("scholarship", {"percentage": "79.5", "income": "100000"})
    assert d.key_factor == "Academic Merit"
    assert "You reported 79.5%." in d.explanation


def test_json_numbers_accepted():
    d = evaluate("scholarship", {"percentage": 85, "income": 250000})
    assert d.outcome == "Approved"


def test_housing_dti_just_over_limit_never_reads_as_the_limit():
    # 40000.4 / 100000 * 100 = 40.0004 %
    d = evaluate("housing_loan", {"creditScore": "750", "income": "1200000", "debt": "40000.4"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Debt-to-Income Ratio"
    assert "ratio is 40.0004%" in d.explanation
    assert "by approximately ₹1 or" in d.guidance
    assert d.counterfactuals == ("Monthly debt payments drop by about ₹1, bringing DTI to 40% or less.",)


def test_scholarship_just_below_merit_cutoff():
    d = evaluate("scholarship", {"percentage": "79.999", "income": "100000"})
    assert d.outcome == "Denied"
    assert d.key_factor == "Academic Merit"
    assert "You reported 79.999%." in d.explanation
    assert d.trace[0].detail == "79.999% in the previous year; minimum 80%."


def test_business_grant_years_just_short():
    d = evaluate("business_grant", {"revenue": "500000", "years": "1.999", "employees": "5", "sector": "Retail"})
    assert d.key_factor == "Years in Operation"
    assert "You currently have 1.999 year(s)." in d.explanation
    assert "in 0.001 year(s)" in d.guidance
