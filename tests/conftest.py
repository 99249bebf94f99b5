"""Shared transcripts for the compliance scoring tests."""

import pytest

# Fully compliant ACA call: every key phrase in script order, every checklist
# item evidenced by the agent, every question answered.
ACA_COMPLIANT = "\n".join([
    "[0:00] Agent: Hi John, my name is Sarah with America's Health and this call is on a recorded line.",
    "[0:06] Customer: Yes, hi.",
    "[0:08] Agent: I'm calling about the free health government subsidy under the Affordable Care Act, okay?",
    "[0:14] Customer: Okay.",
    "[0:16] Agent: You don't have Medicare or Medicaid or work insurance, correct?",
    "[0:20] Customer: No, I don't.",
    "[0:23] Agent: And you are still living in Texas?",
    "[0:26] Customer: Yes.",
    "[0:28] Agent: Just to be sure, you have no Medicare, Medicaid or work insurance?",
    "[0:33] Customer: Correct.",
    "[0:35] Agent: Have you filed taxes in the past two years?",
    "[0:38] Customer: Yes I have.",
    "[0:40] Agent: Great, you may qualify, so I will connect you with a licensed agent now, okay?",
    "[0:46] Customer: Yeah, sure.",
    "[0:48] Agent: I have everything I need, connecting you now.",
])


@pytest.fixture
def compliant_transcript() -> str:
    return ACA_COMPLIANT
