from dataclasses import dataclass

from core.errors import CampaignNotFoundError
from data_access.gateways import Collection, PersistenceGateway
from models.campaign import Campaign, Student, University


@dataclass(frozen=True)
class CampaignContext:
    """What a donation flow needs to know about the campaign it targets."""
    campaign: Campaign
    student: Student
    university: University

    @property
    def campaign_id(self) -> str:
        return self.campaign.id


async def load_campaign(persistence: PersistenceGateway, campaign_id: str) -> Campaign:
    item = await persistence.read_one(Collection.CAMPAIGNS, campaign_id)
    if item is None:
        raise CampaignNotFoundError(f"Campaign {campaign_id} not found",
                                    entity_id=campaign_id, operation="load_campaign")
    return Campaign.from_item(item)


async def load_student(persistence: PersistenceGateway, student_id: str) -> Student | None:
    item = await persistence.read_one(Collection.STUDENTS, student_id)
    return Student.from_item(item) if item else None


async def load_campaign_context(persistence: PersistenceGateway, campaign_id: str) -> CampaignContext:
    campaign = await load_campaign(persistence, campaign_id)
    student = await load_student(persistence, campaign.student_id) if campaign.student_id else None
    if student is None:
        raise CampaignNotFoundError(f"Campaign {campaign_id} has no student",
                                    entity_id=campaign_id, operation="load_campaign")

    university_item = None
    if student.university_id:
        university_item = await persistence.read_one(Collection.UNIVERSITIES, student.university_id)
    if university_item is None:
        raise CampaignNotFoundError(f"Campaign {campaign_id} has no university bank account",
                                    entity_id=campaign_id, operation="load_campaign")

    return CampaignContext(campaign=campaign, student=student,
                           university=University.from_item(university_item))
