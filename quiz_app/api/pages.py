# quiz_app/api/pages.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List

from quiz_app.api.deps import client_ip
from quiz_app.schemas.auth import ClientIPOut

router = APIRouter(tags=["pages"])

class Feature(BaseModel):
    title: str
    body: str

class Link(BaseModel):
    label: str
    href: str

class LandingOut(BaseModel):
    brand: str
    badge: str
    headline: List[str]
    tagline: str
    features: List[Feature]
    cta: str
    links: List[Link]
    footer: str

LANDING = LandingOut(
    brand="QuizAI",
    badge="Powered by Advanced AI",
    headline=["Transform Learning", "with Intelligent Quizzes"],
    tagline=(
        "Experience the future of education. AI-powered quizzes that adapt to your "
        "learning style, provide instant feedback, and help you master any subject."
    ),
    features=[
        Feature(
            title="AI-Powered Learning",
            body="Adaptive quizzes that learn from your performance and adjust difficulty in real-time.",
        ),
        Feature(
            title="Teacher & Student Roles",
            body="Create, manage, and track quizzes with powerful tools for educators and learners.",
        ),
        Feature(
            title="Instant Feedback",
            body="Get detailed explanations and insights immediately after completing each quiz.",
        ),
    ],
    cta="Join thousands of students and teachers already using QuizAI.",
    links=[
        Link(label="Sign In", href="/auth/login"),
        Link(label="Get Started", href="/auth/signup"),
    ],
    footer="© 2026 QuizAI. All rights reserved.",
)

@router.get("/", response_model=LandingOut)
def landing():
    return LANDING

@router.get("/api/client-ip", response_model=ClientIPOut)
async def get_client_ip(ip: str = Depends(client_ip)):
    return ClientIPOut(ip=ip)
