"""
Rows owned by a member outside the identity tables.
They reference the member by profileId (or by username for the messenger and
likes) without database-level foreign keys, so deleting a member walks them
explicitly (see Content_cascade.py).
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from database import Base, prefix


# Messages

class Message(Base):
    __tablename__ = prefix("Messages")

    message_id = Column("messageId", Integer, primary_key=True, autoincrement=True)
    sender = Column("sender", Integer, nullable=False, index=True)
    recipient = Column("recipient", Integer, nullable=False, index=True)
    title = Column("title", String(30), nullable=True)
    message = Column("message", Text, nullable=True)
    send_date = Column("sendDate", DateTime, nullable=True)


class MessengerMessage(Base):
    __tablename__ = prefix("Messenger")

    messenger_id = Column("messengerId", Integer, primary_key=True, autoincrement=True)
    from_user = Column("fromUser", String(40), nullable=False, index=True)
    to_user = Column("toUser", String(40), nullable=False, index=True)
    message = Column("message", Text, nullable=True)
    sent = Column("sent", DateTime, nullable=True)


# Comments

class CommentColumns:
    comment_id = Column("commentId", Integer, primary_key=True, autoincrement=True)
    sender = Column("sender", Integer, nullable=False, index=True)
    recipient = Column("recipient", Integer, nullable=False, index=True)
    comment = Column("comment", Text, nullable=True)
    created_date = Column("createdDate", DateTime, nullable=True)


class ProfileComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsProfile")


class PictureComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsPicture")


class VideoComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsVideo")


class NoteComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsNote")


class BlogComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsBlog")


class GameComment(CommentColumns, Base):
    __tablename__ = prefix("CommentsGame")


# Media

class Picture(Base):
    __tablename__ = prefix("Pictures")

    picture_id = Column("pictureId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    album_id = Column("albumId", Integer, nullable=True)
    file = Column("file", String(191), nullable=False)


class PictureAlbum(Base):
    __tablename__ = prefix("AlbumsPictures")

    album_id = Column("albumId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    name = Column("name", String(80), nullable=False)


class Video(Base):
    __tablename__ = prefix("Videos")

    video_id = Column("videoId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    album_id = Column("albumId", Integer, nullable=True)
    file = Column("file", String(191), nullable=False)


class VideoAlbum(Base):
    __tablename__ = prefix("AlbumsVideos")

    album_id = Column("albumId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    name = Column("name", String(80), nullable=False)


# Relations

class Friend(Base):
    __tablename__ = prefix("MembersFriends")

    id = Column("id", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    friend_id = Column("friendId", Integer, nullable=False, index=True)
    pending = Column("pending", Integer, nullable=False, default=0)


class WallPost(Base):
    __tablename__ = prefix("MembersWall")

    wall_id = Column("wallId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    post = Column("post", Text, nullable=True)
    created_date = Column("createdDate", DateTime, nullable=True)


class NoteCategory(Base):
    __tablename__ = prefix("NotesCategories")

    id = Column("id", Integer, primary_key=True, autoincrement=True)
    category_id = Column("categoryId", Integer, nullable=False)
    note_id = Column("noteId", Integer, nullable=False)
    profile_id = Column("profileId", Integer, nullable=False, index=True)


class Note(Base):
    __tablename__ = prefix("Notes")

    note_id = Column("noteId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    title = Column("title", String(100), nullable=False)
    content = Column("content", Text, nullable=True)


class Like(Base):
    __tablename__ = prefix("Likes")

    like_id = Column("likeId", Integer, primary_key=True, autoincrement=True)
    key_id = Column("keyId", String(255), nullable=False, index=True)  # liked page url, e.g. ".../alice.html"
    votes = Column("votes", Integer, nullable=False, default=1)


class ProfileVisit(Base):
    __tablename__ = prefix("MembersWhoViews")

    id = Column("id", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    visitor_id = Column("visitorId", Integer, nullable=False, index=True)
    last_visit = Column("lastVisit", DateTime, nullable=True)


class Report(Base):
    __tablename__ = prefix("Report")

    report_id = Column("reportId", Integer, primary_key=True, autoincrement=True)
    reporter_id = Column("reporterId", Integer, nullable=False)
    spammer_id = Column("spammerId", Integer, nullable=False, index=True)
    description = Column("description", Text, nullable=True)


# Forums (authored rows survive member deletion, the UI shows the ghost user)

class ForumTopic(Base):
    __tablename__ = prefix("ForumsTopics")

    topic_id = Column("topicId", Integer, primary_key=True, autoincrement=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    title = Column("title", String(100), nullable=False)


class ForumMessage(Base):
    __tablename__ = prefix("ForumsMessages")

    message_id = Column("messageId", Integer, primary_key=True, autoincrement=True)
    topic_id = Column("topicId", Integer, nullable=False, index=True)
    profile_id = Column("profileId", Integer, nullable=False, index=True)
    message = Column("message", Text, nullable=True)
