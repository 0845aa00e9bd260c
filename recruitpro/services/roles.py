from typing import Dict, List

from recruitpro.models.schemas import RoleProfile
from recruitpro.services.repositories import RoleRepository
from recruitpro.utils.exceptions import DatabaseError
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

BUILTIN_ROLES: Dict[str, RoleProfile] = {
    r.role_id: r for r in [
        RoleProfile(
            role_id="backend-developer",
            title="Backend Developer",
            description="Responsible for server-side development, API design, and database management",
            requirements="3+ years of experience in backend development, proficiency in Node.js, Python, or Java",
            skills=["Node.js", "Python", "Java", "API Development", "Database Design", "REST", "GraphQL",
                    "MongoDB", "PostgreSQL", "Docker", "AWS", "Git"],
        ),
        RoleProfile(
            role_id="frontend-developer",
            title="Frontend Developer",
            description="Build and maintain user interfaces and user experiences",
            requirements="2+ years of frontend development experience, proficiency in React, Vue, or Angular",
            skills=["React", "Vue.js", "Angular", "JavaScript", "TypeScript", "HTML", "CSS", "Tailwind",
                    "Webpack", "Git", "Responsive Design"],
        ),
        RoleProfile(
            role_id="fullstack-developer",
            title="Full Stack Developer",
            description="Work on both frontend and backend development",
            requirements="3+ years of full stack development experience",
            skills=["React", "Node.js", "JavaScript", "TypeScript", "Database Design", "API Development",
                    "Git", "Docker", "AWS", "MongoDB", "PostgreSQL"],
        ),
        RoleProfile(
            role_id="data-scientist",
            title="Data Scientist",
            description="Analyze data and build machine learning models",
            requirements="2+ years of data science experience, proficiency in Python, R, or SQL",
            skills=["Python", "R", "SQL", "Machine Learning", "Statistics", "Data Analysis", "Pandas",
                    "NumPy", "Scikit-learn", "TensorFlow", "PyTorch"],
        ),
        RoleProfile(
            role_id="devops-engineer",
            title="DevOps Engineer",
            description="Manage infrastructure, deployment pipelines, and cloud services",
            requirements="3+ years of DevOps experience, proficiency in cloud platforms and CI/CD",
            skills=["AWS", "Docker", "Kubernetes", "CI/CD", "Linux", "Terraform", "Jenkins", "Git",
                    "Monitoring", "Security"],
        ),
        RoleProfile(
            role_id="telecommunications-engineer",
            title="Telecommunications Engineer",
            description="Design and maintain telecommunications systems and networks",
            requirements="2+ years of telecommunications experience, knowledge of network protocols and wireless systems",
            skills=["Network Design", "Wireless Communications", "Protocol Analysis", "RF Engineering",
                    "Network Security", "Troubleshooting", "Project Management"],
        ),
    ]
}


def generic_role(role_id: str) -> RoleProfile:
    title = role_id.replace("-", " ").replace("_", " ").title()
    return RoleProfile(role_id=role_id, title=title, description=f"{title} position")


class RoleCatalog:
    """Role profiles stored in MongoDB, layered over the built-in catalog."""

    def __init__(self, roles: RoleRepository):
        self._roles = roles

    async def get(self, role_id: str) -> RoleProfile:
        stored = await self._roles.get(role_id)
        if stored:
            return stored
        if role_id in BUILTIN_ROLES:
            return BUILTIN_ROLES[role_id]
        logger.debug(f"No profile for role {role_id}, using a generic one")
        return generic_role(role_id)

    async def title(self, role_id: str) -> str:
        """Display title for emails; a storage outage falls back to the built-in or generic title."""
        try:
            return (await self.get(role_id)).title
        except DatabaseError as e:
            logger.warning(f"Role lookup for {role_id} failed, using the built-in title: {e}", extra={"role_id": role_id})
            return (BUILTIN_ROLES.get(role_id) or generic_role(role_id)).title

    async def list(self) -> List[RoleProfile]:
        merged = dict(BUILTIN_ROLES)
        for role in await self._roles.list():
            merged[role.role_id] = role
        return sorted(merged.values(), key=lambda r: r.role_id)

    async def upsert(self, role: RoleProfile) -> RoleProfile:
        logger.info(f"Saving role profile {role.role_id}")
        return await self._roles.upsert(role)
