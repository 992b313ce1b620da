"""
Guidance Rx Prompts
=====================
Prompt templates for the two prescription paths.

  WEEKLY_PRESCRIPTION   → strict JSON (parsed by pipeline.response_parser)
  CATEGORY_PRESCRIPTION → sectioned plain text (parsed by pipeline.category_prescriber)
"""

# ============================================================
# WEEKLY PRESCRIPTION (LLM → JSON)
# Placeholders: {issue}, {context_info}
# ============================================================
WEEKLY_PRESCRIPTION = """You are an expert school counselor and problem-solving advisor. Analyze this weekly trending issue among students and provide BRIEF, actionable solutions.

TRENDING ISSUE THIS WEEK: {issue}{context_info}

Respond with ONLY valid JSON in this exact format (no markdown, no code blocks, just pure JSON):

{{
  "severity": "low",
  "root_cause": "Main cause in 1-2 sentences",
  "solutions": [
    {{
      "title": "Solution name (3-5 words)",
      "steps": ["Step 1", "Step 2", "Step 3"],
      "impact": "Expected outcome in 1 sentence"
    }}
  ],
  "quick_wins": ["Quick fix 1", "Quick fix 2"]
}}

IMPORTANT RULES:
- Severity must be exactly one of: "low", "medium", or "high"
- Provide 2-3 solutions
- Keep it concise and actionable
- Focus on school/student context
- Return ONLY the JSON object, no other text"""


# ============================================================
# CATEGORY PRESCRIPTION (LLM → sectioned text)
# Placeholders: {category}, {trend}, {setting}, {timeframe},
#               {total_referrals}, {affected_grades}, {extra_info}
# ============================================================
CATEGORY_PRESCRIPTION = """You are an expert educational administrator creating a comprehensive intervention plan.

SITUATION ANALYSIS:
Issue Category: {category}
Trend: {trend}
Setting: {setting}
Timeframe: {timeframe}
Total Referrals: {total_referrals}
Affected Grades: {affected_grades}{extra_info}

Create a detailed prescription/intervention plan to address this issue systematically.

Provide your response in this EXACT format:

SEVERITY LEVEL: [LOW/MEDIUM/HIGH/CRITICAL]

ROOT CAUSE ANALYSIS:
[2-3 sentences explaining why this issue is occurring based on common patterns]

RECOMMENDED INTERVENTIONS:

1. [Intervention Name - e.g., "Immediate Classroom Response"]
   Timeline: [Immediate/Short-term/Long-term]
   Responsible Party: [Who implements this]
   Steps:
   - Step 1
   - Step 2
   - Step 3
   Expected Outcome: [1 sentence]

2. [Intervention Name]
   Timeline: [Immediate/Short-term/Long-term]
   Responsible Party: [Who implements this]
   Steps:
   - Step 1
   - Step 2
   - Step 3
   Expected Outcome: [1 sentence]

3. [Intervention Name]
   Timeline: [Immediate/Short-term/Long-term]
   Responsible Party: [Who implements this]
   Steps:
   - Step 1
   - Step 2
   - Step 3
   Expected Outcome: [1 sentence]

IMMEDIATE ACTIONS (This Week):
- [Action 1]
- [Action 2]
- [Action 3]

PREVENTION STRATEGIES:
- [Prevention measure 1]
- [Prevention measure 2]
- [Prevention measure 3]

Keep the prescription practical, actionable, and appropriate for a {setting} setting."""
