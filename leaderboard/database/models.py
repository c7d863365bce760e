from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

class Team(Base):
    __tablename__ = 'teams'

    team_id = Column(Integer, primary_key=True)
    team_name = Column(String(100), nullable=False, unique=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    points = relationship("TeamPoints", back_populates="team", uselist=False, cascade="all, delete-orphan")
    completions = relationship("CompletedQuestion", back_populates="team", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Team(id={self.team_id}, name='{self.team_name}')>"

class TeamPoints(Base):
    __tablename__ = 'team_points'

    team_id = Column(Integer, ForeignKey('teams.team_id'), primary_key=True)
    total_points = Column(Integer, nullable=False, default=0)

    team = relationship("Team", back_populates="points")

    def __repr__(self):
        return f"<TeamPoints(team_id={self.team_id}, total_points={self.total_points})>"

class CompletedQuestion(Base):
    __tablename__ = 'completed_questions'

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey('teams.team_id'), nullable=False, index=True)
    question_id = Column(Integer, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=func.now())

    team = relationship("Team", back_populates="completions")

    def __repr__(self):
        return f"<CompletedQuestion(team_id={self.team_id}, question_id={self.question_id})>"
