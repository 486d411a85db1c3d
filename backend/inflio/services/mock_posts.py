"""Placeholder post content used when no LLM or image model is configured."""

import random
import time
from typing import Any, Dict, List


class MockPostsGenerator:
    """Deterministic templates so the posts flow works without provider keys."""

    @staticmethod
    def generate_mock_content_idea(content_type: str, project_title: str) -> Dict[str, Any]:
        ideas = {
            "carousel": {
                "title": f"5 Key Insights from {project_title}",
                "description": "Educational carousel post with key takeaways",
                "visual_elements": [
                    "Title slide", "Insight 1", "Insight 2", "Insight 3", "Call to action",
                ],
                "key_message": "Learn the essential points from this content",
                "hook": "🚀 Don't miss these game-changing insights!",
                "prompt": "Modern, clean design with bold typography and gradient backgrounds",
            },
            "quote": {
                "title": f"Inspiring Quote from {project_title}",
                "description": "Powerful quote card with attribution",
                "visual_elements": ["Quote text", "Speaker attribution", "Brand elements"],
                "key_message": "Wisdom worth sharing",
                "hook": "💭 This will change how you think...",
                "prompt": "Minimalist quote card with elegant typography",
            },
            "single": {
                "title": f"Key Takeaway: {project_title}",
                "description": "Single impactful visual with core message",
                "visual_elements": ["Main visual", "Key text overlay", "Brand logo"],
                "key_message": "The one thing you need to know",
                "hook": "📍 Save this for later!",
                "prompt": "Eye-catching single image with bold statement",
            },
            "thread": {
                "title": f"Thread: Breaking Down {project_title}",
                "description": "Detailed text thread with supporting visuals",
                "visual_elements": ["Cover image", "Supporting visual 1", "Supporting visual 2"],
                "key_message": "Complete breakdown of the topic",
                "hook": "🧵 Thread: Everything you need to know about this",
                "prompt": "Professional thread visuals with consistent branding",
            },
        }
        return dict(ideas.get(content_type, ideas["single"]))

    @staticmethod
    def generate_mock_platform_copy(content_idea: Dict[str, Any], platform: str) -> Dict[str, Any]:
        hook = content_idea.get("hook", "")
        key_message = content_idea.get("key_message", "")
        title = content_idea.get("title", "")
        description = content_idea.get("description", "")

        templates = {
            "instagram": {
                "caption": (
                    f"{hook}\n\n{key_message}\n\n{title}\n\n"
                    "Drop a 💬 if this resonates with you!\n\nFollow for more insights 👆"
                ),
                "hashtags": ["contentcreation", "socialmedia", "growth", "education", "insights"],
                "cta": "Save this post for later! 📌",
            },
            "twitter": {
                "caption": f"{hook}\n\n{key_message}\n\nRT if you agree 🔄",
                "hashtags": ["thread", "insights", "growth"],
                "cta": "Follow for more 👆",
            },
            "linkedin": {
                "caption": (
                    f"{title}\n\n{key_message}\n\n{description}\n\n"
                    "What are your thoughts on this?\n\nFollow for more professional insights."
                ),
                "hashtags": ["professional", "insights", "leadership", "growth", "learning"],
                "cta": "Connect for more insights",
                "title": title,
                "description": description,
            },
            "facebook": {
                "caption": (
                    f"{hook}\n\n{key_message}\n\n{title}\n\n"
                    "What do you think? Let me know in the comments! 💭"
                ),
                "hashtags": ["education", "insights", "community"],
                "cta": "Share if you found this helpful! 🙏",
            },
            "youtube": {
                "caption": "",
                "hashtags": [],
                "cta": "Subscribe for more",
                "title": title,
                "description": f"{description}\n\nIn this video, we explore {key_message}",
            },
            "tiktok": {
                "caption": f"{hook} {key_message}",
                "hashtags": ["fyp", "education", "learn", "viral", "trending"],
                "cta": "Follow for more!",
            },
        }
        return dict(templates.get(platform, templates["instagram"]))

    @staticmethod
    def generate_mock_images(count: int) -> List[Dict[str, Any]]:
        stamp = int(time.time() * 1000)
        return [
            {
                "id": f"mock-img-{stamp}-{i}",
                "url": f"https://picsum.photos/1080/1350?random={stamp}{i}",
                "position": i,
                "prompt": "Mock image prompt",
                "status": "generated",
            }
            for i in range(count)
        ]

    @staticmethod
    def calculate_mock_engagement() -> float:
        return 0.6 + random.random() * 0.35


mock_posts_generator = MockPostsGenerator()
