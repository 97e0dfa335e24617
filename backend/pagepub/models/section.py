from pagepub.extensions import db
from .base import BaseModel


class Section(BaseModel):
    __tablename__ = "sections"

    page_id = db.Column(db.String(36), db.ForeignKey("pages.id"), nullable=False, index=True)
    parent_id = db.Column(db.String(36), db.ForeignKey("sections.id"), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    style_name = db.Column(db.String(100), nullable=False)  # container, text, formUserInputRecord, ...
    position = db.Column(db.Integer, nullable=False, default=0)

    data_config = db.Column(db.JSON, nullable=True)  # list of retrieval configs
    condition = db.Column(db.JSON, nullable=True)    # JsonLogic, object or encoded string
    css = db.Column(db.String(500), nullable=True)
    css_mobile = db.Column(db.String(500), nullable=True)
    debug = db.Column(db.Boolean, nullable=False, default=False)

    page = db.relationship("Page", back_populates="sections")
    translations = db.relationship(
        "SectionTranslation",
        back_populates="section",
        cascade="all, delete-orphan",
    )


class SectionTranslation(BaseModel):
    __tablename__ = "section_translations"

    section_id = db.Column(db.String(36), db.ForeignKey("sections.id"), nullable=False)
    language_id = db.Column(db.Integer, nullable=False)
    field_name = db.Column(db.String(100), nullable=False)
    content = db.Column(db.Text, nullable=True)
    meta = db.Column(db.JSON, nullable=True)

    section = db.relationship("Section", back_populates="translations")

    __table_args__ = (
        db.UniqueConstraint("section_id", "language_id", "field_name", name="uq_section_translation"),
    )


class StyleFieldDefault(BaseModel):
    __tablename__ = "style_field_defaults"

    style_name = db.Column(db.String(100), nullable=False, index=True)
    field_name = db.Column(db.String(100), nullable=False)
    default_value = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("style_name", "field_name", name="uq_style_field_default"),
    )
