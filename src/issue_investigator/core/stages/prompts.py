"""Prompt templates for the model-backed stages.

Every prompt is self-contained: the client keeps no conversation state, so
the report text and any earlier stage output are embedded each time.
"""

import json
from typing import Any, Dict

from issue_investigator.models import AnalysisResult, ReproductionOutcome

ANALYSIS_SYSTEM_PROMPT = """
You are an expert software engineer specialized in analyzing and debugging issues in open source projects.
Your task is to analyze the given problem description and extract key information to help with troubleshooting.

Your analysis should include:
1. Problem category
2. Project component(s) involved
3. Estimated complexity
4. Required tools for debugging
5. Potential solutions
6. Reproducibility steps (if applicable)

Respond in valid JSON format only, with the following structure:
{
  "problemCategory": "bug" | "feature_request" | "implementation_question" | "installation" | "other",
  "projectComponent": string,
  "estimatedComplexity": "low" | "medium" | "high",
  "requiredTools": string[],
  "potentialSolutions": string[],
  "reproducibilitySteps": string[] (optional),
  "additionalContext": object (optional)
}
"""

FOLLOW_UP_SYSTEM_PROMPT = """
You are a technical support engineer who needs to gather more information to solve a problem.
Focus on questions that will help with reproducing the issue or clarifying ambiguous details.
Respond ONLY with a JSON array of strings containing follow-up questions.
"""

PLAN_SYSTEM_PROMPT = (
    "You are an expert software tester who specializes in creating test plans "
    "for software issues. You respond only in valid JSON format."
)

REPRODUCTION_CODE_SYSTEM_PROMPT = (
    "You are an expert programmer who writes clean, effective test code to "
    "reproduce software issues. You respond only in valid JSON format."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are a technical writer specializing in test reports. "
    "Be clear, concise, and technical."
)


def _pretty(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, default=str)


def analysis_prompt(report: str) -> str:
    return f'''
Please analyze the following request for help with a technical issue:

"""
{report}
"""

Provide a structured analysis to help understand what troubleshooting will be required.
'''


def follow_up_prompt(report: str, analysis: AnalysisResult) -> str:
    return f'''
Based on the user's question and our initial analysis, generate 2-3 specific follow-up questions
that will help us better understand and reproduce the issue. The questions should be clear, concise,
and directly related to identifying the root cause or getting more context.

Original question:
"""
{report}
"""

Initial analysis:
"""
{_pretty(analysis.to_prompt_json())}
"""

Return ONLY an array of follow-up questions in valid JSON format, like this:
["question 1", "question 2", "question 3"]
'''


def plan_prompt(report: str, analysis: AnalysisResult) -> str:
    return f"""
I need to create a test plan to recreate and verify the following issue:

Issue Description:
{report}

Analysis:
{_pretty(analysis.to_prompt_json())}

Based on this information, please create a detailed test plan that includes:
1. What test files need to be created
2. Required environment setup
3. Steps to reproduce the issue
4. How to verify if the issue is reproduced successfully
5. Any additional tools or libraries needed

Return the test plan in JSON format with the following structure:
{{
  "testFiles": [{{"name": "filename", "description": "what this file tests"}}],
  "environmentSetup": ["step 1", "step 2"],
  "reproductionSteps": ["step 1", "step 2"],
  "verificationCriteria": ["criterion 1", "criterion 2"],
  "requiredTools": ["tool1", "tool2"],
  "testApproach": "description of overall approach"
}}
"""


def reproduction_code_prompt(report: str, analysis: AnalysisResult, plan: Dict[str, Any]) -> str:
    return f"""
Create Python test files to reproduce this issue:

Issue Description:
{report}

Analysis:
{_pretty(analysis.to_prompt_json())}

Test plan:
{_pretty(plan)}

I need two Python files:
1. issue_test.py: a standalone script that reproduces the issue
2. setup_helpers.py: any necessary utilities or helper functions, imported by issue_test.py

The code should be complete, realistic, and focus on reproducing the specific issue.
The script is run as `python issue_test.py` from its own directory. It must exit
with status 0 if the issue is reproduced and with a non-zero status otherwise.

Format your response as JSON with this structure:
{{
  "mainTest": "# Full Python code for issue_test.py here",
  "setup": "# Full Python code for setup_helpers.py here"
}}
"""


def summary_prompt(report: str, outcome: ReproductionOutcome) -> str:
    return f"""
Create a clear summary of the test results for this issue:

Issue Description:
{report}

Test Results:
- Reproduced: {str(outcome.reproduced).lower()}
- Exit Code: {outcome.exit_code}
- Execution Time: {outcome.execution_time_ms}ms
- Output: {outcome.output}
- Errors: {outcome.error_output}

Provide a concise, technical summary that explains:
1. Whether the issue was reproduced
2. What was observed during testing
3. Potential causes of the issue (if reproduced)
4. Recommendations for fixing the issue (if applicable)
5. Next steps for the maintainers
"""
