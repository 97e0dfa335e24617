from pagepub.extensions import db
from .base import BaseModel


class Page(BaseModel):
    __tablename__ = "pages"

    keyword = db.Column(db.String(100), nullable=False, unique=True, index=True)
    url = db.Column(db.String(255), nullable=True)
    parent_page_id = db.Column(db.String(36), db.ForeignKey("pages.id"), nullable=True)
    is_headless = db.Column(db.Boolean, nullable=False, default=False)
    nav_position = db.Column(db.Integer, nullable=True)
    footer_position = db.Column(db.Integer, nullable=True)

    # The publish pointer. Null means the page only exists as a draft.
    published_version_id = db.Column(
        db.String(36),
        db.ForeignKey(
            "page_versions.id",
            use_alter=True,
            name="fk_pages_published_version",
        ),
        nullable=True,
    )

    # Live draft tree (flat; hierarchy via Section.parent_id)
    sections = db.relationship(
        "Section",
        back_populates="page",
        order_by="Section.position",
        cascade="all, delete-orphan",
    )
