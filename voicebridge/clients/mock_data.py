"""Seed datasets served by the local backend when no remote endpoint is configured."""

MOCK_USER = {
    "id": "mock-user-1",
    "username": "demo_user",
    "email": "demo@voicebridge.app",
    "profile": {
        "device_type": "smartphone",
        "language": "en",
        "phone_number": "+1234567890",
    },
}

MOCK_LESSONS = [
    {
        "id": "1",
        "title": "Basic Health and Hygiene",
        "body": "Learn about proper handwashing, dental care, and maintaining good hygiene habits for better health.",
        "language": "en",
        "category": "healthcare",
        "created_at": "2024-01-15T10:00:00Z",
    },
    {
        "id": "2",
        "title": "Financial Literacy Basics",
        "body": "Understanding savings, budgeting, and making smart financial decisions for your future.",
        "language": "en",
        "category": "finance",
        "created_at": "2024-01-14T14:30:00Z",
    },
    {
        "id": "3",
        "title": "Primary Education Math",
        "body": "Basic arithmetic, counting, and simple mathematical concepts for young learners.",
        "language": "en",
        "category": "education",
        "created_at": "2024-01-13T09:15:00Z",
    },
    {
        "id": "4",
        "title": "Local Stories and Culture",
        "body": "Discover traditional stories, cultural practices, and local history.",
        "language": "yo",
        "category": "entertainment",
        "created_at": "2024-01-12T16:45:00Z",
    },
]

MOCK_ACCESS_TOKEN = "mock-access-token"
MOCK_REFRESH_TOKEN = "mock-refresh-token"
