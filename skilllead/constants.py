"""Shared prompt constants for the SkillLead career coach."""

ANALYSIS_SYSTEM_PROMPT = (
    "You are SkillLead.AI, a career guidance expert. Your role is to:\n\n"
    "1. Validate and clarify user-supplied profile data with targeted follow-up questions when needed; otherwise proceed.\n"
    "2. Identify the user's interests and constraints (time, budget, location, remote/on-site, visa, learning style).\n"
    "3. Analyze strengths, gaps, and context (student vs professional).\n"
    "4. Generate diverse opportunity sets, not biased to highest-paying only.\n"
    "5. Output three plans: Plan A (Primary), Plan B, Plan C; choose Plan A as best fit to constraints/interests.\n"
    "6. Deep dive on Plan A: impact, scope, future demand, market outlook, geo notes, competencies, certifications, "
    "tools, portfolio, risks/mitigations, milestone timeline (0-3, 3-6, 6-12 months).\n"
    "7. Provide a concise summary and an actionable roadmap with skills, courses/resources, and best places to learn "
    "tailored to the user.\n\n"
    "Be clear, structured, and step-by-step. Ask follow-ups when uncertain. "
    "Return your response as a structured JSON object."
)

CHAT_SYSTEM_PROMPT = (
    "You are the SkillLead.AI assistant. Maintain context from this user's saved analysis.\n\n"
    "Key guidelines:\n"
    "- Clarify doubts, give concrete examples, and explain simply\n"
    "- Revise plans per user requests (timeline, budget, remote, region)\n"
    "- Keep responses concise, structured, and practical\n"
    "- Ask precise follow-ups when uncertain\n"
    "- Never fabricate user data; only use the profile, saved analysis, and chat history\n"
    "- Focus on actionable advice and career guidance"
)

API_KEY_PROBE_MESSAGE = "Test"
API_KEY_PROBE_MAX_TOKENS = 5

# Canned analysis served in demo mode, shaped like a provider reply.
DEMO_ANALYSIS = {
    "status": "complete",
    "clarifications": [],
    "interestsConfirmed": True,
    "plans": {
        "A": {
            "title": "Full-Stack Developer",
            "rationale": "Perfect blend of your technical skills and learning preferences",
            "fitScore": 95,
            "roles": ["Frontend Developer", "Backend Developer", "Full-Stack Engineer"],
            "industries": ["Technology", "Fintech", "E-commerce"],
            "riskFactors": ["High competition", "Rapid technology changes"],
            "mitigations": ["Continuous learning", "Building strong portfolio"],
        },
        "B": {
            "title": "Data Analyst",
            "rationale": "Leverages analytical skills with moderate learning curve",
        },
        "C": {
            "title": "Product Manager",
            "rationale": "Combines technical background with business strategy",
        },
    },
    "planADeepDive": {
        "impact": "High demand role with excellent growth potential",
        "scope": "End-to-end web application development",
        "futureDemand": "Growing 22% through 2030",
        "marketOutlook": "Excellent opportunities in tech hubs and remote",
        "geoNotes": "Strong demand in SF, NYC, Austin, and remote positions",
        "competencies": {
            "core": ["React", "Node.js", "Database Design", "API Development"],
            "supporting": ["DevOps", "Testing", "UI/UX Principles"],
            "certifications": ["AWS Developer", "React Certification"],
        },
        "toolsStack": ["React", "Node.js", "PostgreSQL", "Docker", "AWS"],
        "portfolio": {
            "suggestedProjects": [
                "E-commerce platform with payment integration",
                "Social media dashboard with real-time updates",
                "Task management app with team collaboration",
            ]
        },
        "timeline": {
            "month0_3": ["Master React fundamentals", "Build first full-stack project", "Learn database basics"],
            "month3_6": ["Advanced React patterns", "API design", "Deploy to cloud"],
            "month6_12": ["System design", "Performance optimization", "Team collaboration tools"],
        },
        "risks": ["Technology changes rapidly", "High competition for entry-level roles"],
    },
    "summary": "Full-stack development offers excellent career prospects with your background.",
    "roadmap": {
        "skillsToLearn": [
            {"name": "React", "level": "Advanced"},
            {"name": "Node.js", "level": "Intermediate"},
            {"name": "PostgreSQL", "level": "Intermediate"},
        ],
        "coursesAndResources": [
            {
                "name": "React Complete Guide",
                "provider": "Udemy",
                "type": "Course",
                "reason": "Comprehensive React training",
            },
            {
                "name": "Node.js Masterclass",
                "provider": "FreeCodeCamp",
                "type": "Free Course",
                "reason": "Backend development skills",
            },
        ],
        "communitiesAndEvents": ["React Meetups", "Developer Twitter", "Stack Overflow"],
        "interviewPrepTopics": ["System Design", "Data Structures", "React Patterns"],
        "nextActions": ["Set up development environment", "Start first project", "Join developer community"],
    },
}
